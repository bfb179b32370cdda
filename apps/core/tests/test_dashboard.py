"""
Dashboard Tests
===============

Test Coverage:
1. Dashboard page renders for every role
2. Stats are scoped to the user, managers see the whole CRM
3. Pipeline value, weighted pipeline and won this month
4. Contacts by status, opportunities by stage, timelines
5. Recent activities merge logs and upcoming reminders
6. Redirect to object

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_dashboard
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from apps.contacts.models import Contact, Company
from apps.core.models import ActivityLog
from apps.opportunities.models import Opportunity, OpportunityStage
from apps.reminders.models import Reminder

User = get_user_model()


class DashboardTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.sales = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.other = User.objects.create_user(email='other@test.com', password='testpass123', role='sales')
        self.manager = User.objects.create_user(email='manager@test.com', password='testpass123', role='manager')

        self.company = Company.objects.create(name='Acme', owner=self.sales)
        self.contact = Contact.objects.create(name='Alice', user=self.sales, company=self.company)
        Contact.objects.create(name='Bob', user=self.sales)
        Contact.objects.create(name='Carol', user=self.other)

        close_date = timezone.localdate() + timedelta(days=30)
        Opportunity.objects.create(name='Website', contact=self.contact, owner=self.sales, amount=Decimal('1000'),
                                   probability=50, stage=OpportunityStage.PROPOSITION_ENVOYEE,
                                   expected_close_date=close_date)
        Opportunity.objects.create(name='Hosting', contact=self.contact, owner=self.sales, amount=Decimal('400'),
                                   probability=25, stage=OpportunityStage.QUALIFICATION,
                                   expected_close_date=close_date)
        Opportunity.objects.create(name='Audit', contact=self.contact, owner=self.sales, amount=Decimal('800'),
                                   probability=100, stage=OpportunityStage.CONVERTI,
                                   expected_close_date=close_date, actual_close_date=timezone.localdate())

        self.client.login(email='sales@test.com', password='testpass123')

    def test_dashboard_page(self):
        response = self.client.get(reverse('core:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'core/dashboard.html')
        self.assertEqual(response.context['stats']['total_contacts'], 2)

    def test_stats_are_scoped_to_the_user(self):
        data = self.client.get(reverse('core:dashboard_stats')).json()['data']

        self.assertEqual(data['total_contacts'], 2)
        self.assertEqual(data['total_companies'], 1)
        self.assertEqual(data['total_opportunities'], 3)
        self.assertEqual(data['open_opportunities'], 2)
        self.assertEqual(Decimal(data['pipeline_value']), Decimal('1400'))
        self.assertEqual(Decimal(data['weighted_pipeline']), Decimal('600'))
        self.assertEqual(Decimal(data['won_this_month']), Decimal('800'))

    def test_manager_sees_everything(self):
        self.client.login(email='manager@test.com', password='testpass123')

        data = self.client.get(reverse('core:dashboard_stats')).json()['data']

        self.assertEqual(data['total_contacts'], 3)

    def test_contacts_by_status(self):
        data = self.client.get(reverse('core:contacts_by_status')).json()['data']
        values = {row['status']: row['value'] for row in data}

        self.assertEqual(values, {'total': 2, 'recent': 2, 'with_company': 1, 'without_company': 1})

    def test_opportunities_by_stage(self):
        data = self.client.get(reverse('core:opportunities_by_stage')).json()['data']
        by_stage = {row['stage']: row for row in data}

        self.assertEqual(len(data), len(OpportunityStage.choices))
        self.assertEqual(by_stage['qualification']['count'], 1)
        self.assertEqual(Decimal(by_stage['converti']['amount']), Decimal('800'))
        self.assertEqual(by_stage['perdu']['count'], 0)

    def test_contacts_timeline_covers_twelve_months(self):
        data = self.client.get(reverse('core:contacts_timeline')).json()['data']

        self.assertEqual(len(data), 12)
        self.assertEqual(data[-1]['month'], timezone.localdate().strftime('%b %Y'))
        self.assertEqual(data[-1]['contacts'], 2)

    def test_recent_activities_merge_reminders(self):
        ActivityLog.objects.create(description='Contact created', causer=self.sales,
                                   created_at=timezone.now() - timedelta(hours=2))
        Reminder.objects.create(user=self.sales, title='Call Alice', reminder_date=timezone.now() + timedelta(days=1))
        Reminder.objects.create(user=self.sales, title='Far away', reminder_date=timezone.now() + timedelta(days=20))

        data = self.client.get(reverse('core:recent_activities')).json()['data']

        self.assertEqual([row['type'] for row in data], ['reminder', 'activity'])
        self.assertEqual(data[0]['title'], 'Reminder: Call Alice')

    def test_redirect_to_object(self):
        response = self.client.get(reverse('core:redirect_to_object', args=['contact', self.contact.pk]))
        self.assertRedirects(response, self.contact.get_absolute_url(), fetch_redirect_response=False)

    def test_redirect_to_unknown_type(self):
        response = self.client.get(reverse('core:redirect_to_object', args=['planet', 1]))
        self.assertEqual(response.status_code, 404)
