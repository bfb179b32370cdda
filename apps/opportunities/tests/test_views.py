"""
Opportunity Views Tests
=======================

Test Coverage:
1. List / detail visibility per role
2. Create (stage default probability, 'created' activity), edit, delete
3. Activities, duplicate, quick note and timeline
4. Kanban board and AJAX stage move
5. Metrics and forecast JSON
6. CSV / Excel export and CSV import

Run tests:
    docker compose exec web python manage.py test apps.opportunities.tests.test_views
"""

from datetime import timedelta
from decimal import Decimal
from io import BytesIO

import openpyxl
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from apps.contacts.models import Contact, Company
from apps.core.models import ActivityLog
from apps.core.utils import add_months
from apps.opportunities.models import Opportunity, OpportunityActivity, OpportunityStage

User = get_user_model()


class OpportunityViewsTestCase(TestCase):

    def setUp(self):
        self.client = Client()
        self.sales = User.objects.create_user(
            email='sales@test.com', password='testpass123',
            first_name='Sam', last_name='Sales', role='sales',
        )
        self.other = User.objects.create_user(email='other@test.com', password='testpass123', role='sales')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')

        self.contact = Contact.objects.create(name='Alice Martin', email='alice@example.com', user=self.sales)
        self.own = self.make('Own deal', self.sales)
        self.foreign = self.make('Foreign deal', self.other)

        self.client.login(email='sales@test.com', password='testpass123')

    def make(self, name, owner, stage=OpportunityStage.QUALIFICATION, amount='1000'):
        return Opportunity.objects.create(
            name=name,
            contact=self.contact,
            owner=owner,
            amount=Decimal(amount),
            probability=OpportunityStage.probability_for(stage),
            stage=stage,
            expected_close_date=timezone.localdate() + timedelta(days=10),
        )

    def ajax_post(self, url, data=None):
        return self.client.post(url, data or {}, HTTP_X_REQUESTED_WITH='XMLHttpRequest')


class OpportunityCrudTest(OpportunityViewsTestCase):

    def test_list_shows_own_only(self):
        response = self.client.get(reverse('opportunities:opportunity_list'))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Own deal')
        self.assertNotContains(response, 'Foreign deal')

    def test_list_filters_by_stage(self):
        self.make('Late stage', self.sales, stage=OpportunityStage.NEGOCIATION)

        response = self.client.get(reverse('opportunities:opportunity_list'), {'stage': 'negociation'})

        names = [opportunity.name for opportunity in response.context['opportunities']]
        self.assertEqual(names, ['Late stage'])

    def test_foreign_detail_is_denied(self):
        response = self.client.get(reverse('opportunities:opportunity_detail', args=[self.foreign.pk]))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_admin_sees_foreign_detail(self):
        self.client.login(email='admin@test.com', password='testpass123')
        response = self.client.get(reverse('opportunities:opportunity_detail', args=[self.foreign.pk]))
        self.assertEqual(response.status_code, 200)

    def test_create(self):
        response = self.client.post(reverse('opportunities:opportunity_create'), {
            'name': 'New deal',
            'contact': self.contact.pk,
            'amount': '5000',
            'stage': 'proposition_envoyee',
            'expected_close_date': (timezone.localdate() + timedelta(days=20)).isoformat(),
            'products': '[{"name": "Licence", "quantity": 2, "unit_price": 1000}]',
        })

        opportunity = Opportunity.objects.get(name='New deal')
        self.assertRedirects(response, reverse('opportunities:opportunity_detail', args=[opportunity.pk]),
                             fetch_redirect_response=False)
        self.assertEqual(opportunity.owner, self.sales)
        self.assertEqual(opportunity.probability, 50)
        self.assertEqual(opportunity.currency, 'EUR')
        self.assertEqual(opportunity.products[0]['total'], 2000.0)
        self.assertTrue(opportunity.activities.filter(type=OpportunityActivity.TYPE_CREATED).exists())

    def test_create_rejects_bad_products(self):
        response = self.client.post(reverse('opportunities:opportunity_create'), {
            'name': 'New deal',
            'contact': self.contact.pk,
            'amount': '5000',
            'stage': 'nouveau',
            'expected_close_date': timezone.localdate().isoformat(),
            'products': '[{"name": "Licence", "quantity": 0, "unit_price": 10}]',
        })

        self.assertEqual(response.status_code, 200)
        self.assertIn('products', response.context['form'].errors)
        self.assertFalse(Opportunity.objects.filter(name='New deal').exists())

    def test_create_requires_close_date(self):
        response = self.client.post(reverse('opportunities:opportunity_create'), {
            'name': 'New deal', 'contact': self.contact.pk, 'amount': '10', 'stage': 'nouveau',
        })
        self.assertIn('expected_close_date', response.context['form'].errors)

    def test_edit_records_stage_change(self):
        response = self.client.post(reverse('opportunities:opportunity_edit', args=[self.own.pk]), {
            'name': 'Own deal',
            'contact': self.contact.pk,
            'amount': '1000',
            'probability': '75',
            'stage': 'negociation',
            'currency': 'EUR',
            'expected_close_date': self.own.expected_close_date.isoformat(),
        })

        self.assertEqual(response.status_code, 302)
        activity = self.own.activities.get(type=OpportunityActivity.TYPE_STAGE_CHANGE)
        self.assertEqual(activity.user, self.sales)

    def test_sales_cannot_delete(self):
        self.client.post(reverse('opportunities:opportunity_delete', args=[self.own.pk]))
        self.assertTrue(Opportunity.objects.filter(pk=self.own.pk).exists())

    def test_admin_can_delete(self):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.client.post(reverse('opportunities:opportunity_delete', args=[self.own.pk]))

        self.assertRedirects(response, reverse('opportunities:opportunity_list'), fetch_redirect_response=False)
        self.assertFalse(Opportunity.objects.filter(pk=self.own.pk).exists())
        self.assertTrue(ActivityLog.objects.filter(description='Opportunity deleted').exists())


class OpportunityActivityViewsTest(OpportunityViewsTestCase):

    def test_add_activity(self):
        response = self.ajax_post(reverse('opportunities:opportunity_add_activity', args=[self.own.pk]), {
            'type': 'call', 'title': 'Intro call',
        })

        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.own.activities.filter(type='call', user=self.sales).exists())

    def test_automatic_types_are_rejected(self):
        response = self.ajax_post(reverse('opportunities:opportunity_add_activity', args=[self.own.pk]), {
            'type': 'stage_change', 'title': 'Fake',
        })
        self.assertEqual(response.status_code, 422)

    def test_complete_activity(self):
        activity = self.own.activities.create(type='task', title='Send quote', user=self.sales)

        response = self.ajax_post(reverse('opportunities:opportunity_complete_activity', args=[activity.pk]))

        self.assertEqual(response.status_code, 200)
        activity.refresh_from_db()
        self.assertTrue(activity.is_completed)

    def test_duplicate(self):
        self.own.stage = OpportunityStage.NEGOCIATION
        self.own.save()

        response = self.client.post(reverse('opportunities:opportunity_duplicate', args=[self.own.pk]))

        copy = Opportunity.objects.get(name='Own deal (Copy)')
        self.assertRedirects(response, reverse('opportunities:opportunity_edit', args=[copy.pk]), fetch_redirect_response=False)
        self.assertEqual(copy.stage, OpportunityStage.NOUVEAU)
        self.assertEqual(copy.probability, 10)
        self.assertEqual(copy.expected_close_date, add_months(timezone.localdate(), 1))

    def test_quick_note_and_timeline(self):
        response = self.ajax_post(reverse('opportunities:opportunity_quick_note', args=[self.own.pk]), {'note': 'Budget confirmed'})
        self.assertEqual(response.status_code, 200)

        timeline = self.client.get(reverse('opportunities:opportunity_timeline', args=[self.own.pk])).json()

        self.assertEqual(timeline['stats']['notes'], 1)
        descriptions = [event['description'] for events in timeline['timeline'].values() for event in events]
        self.assertIn('Budget confirmed', descriptions)

    def test_quick_note_max_length(self):
        response = self.ajax_post(reverse('opportunities:opportunity_quick_note', args=[self.own.pk]), {'note': 'x' * 1001})
        self.assertEqual(response.status_code, 422)


class OpportunityKanbanTest(OpportunityViewsTestCase):

    def test_sales_board_shows_own_deals(self):
        response = self.client.get(reverse('opportunities:opportunity_kanban'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_count'], 1)

    def test_admin_can_filter_by_user(self):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.client.get(reverse('opportunities:opportunity_kanban'), {'user_id': self.other.pk})

        self.assertEqual(response.context['total_count'], 1)
        columns = {column['stage']: column for column in response.context['columns']}
        self.assertEqual(columns['qualification']['opportunities'][0].name, 'Foreign deal')

    def test_move(self):
        response = self.ajax_post(reverse('opportunities:opportunity_move', args=[self.own.pk]), {'stage': 'negociation'})

        self.assertEqual(response.status_code, 200)
        card = response.json()['opportunity']
        self.assertEqual(card['stage'], 'negociation')
        self.assertEqual(card['probability'], 75)
        self.assertTrue(self.own.activities.filter(type=OpportunityActivity.TYPE_STAGE_CHANGE).exists())

    def test_move_to_unknown_stage(self):
        response = self.ajax_post(reverse('opportunities:opportunity_move', args=[self.own.pk]), {'stage': 'bogus'})
        self.assertEqual(response.status_code, 422)

    def test_move_foreign_deal_is_403(self):
        response = self.ajax_post(reverse('opportunities:opportunity_move', args=[self.foreign.pk]), {'stage': 'negociation'})
        self.assertEqual(response.status_code, 403)

    def test_stats(self):
        response = self.client.get(reverse('opportunities:opportunity_kanban_stats'))
        self.assertEqual(response.json()['stats']['qualification']['count'], 1)


class OpportunityReportsTest(OpportunityViewsTestCase):

    def test_metrics_are_scoped(self):
        data = self.client.get(reverse('opportunities:opportunity_metrics')).json()

        self.assertEqual(data['opportunities_count'], 1)
        self.assertEqual(data['pipeline_value'], 1000.0)

    def test_forecast_json(self):
        response = self.client.get(
            reverse('opportunities:forecast'),
            {'period': 'year', 'scenario': 'optimistic'},
            HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        data = response.json()
        self.assertEqual(data['filters'], {'period': 'year', 'scenario': 'optimistic'})
        self.assertEqual(data['forecasts']['factor'], 1.2)
        self.assertEqual(len(data['pipeline_analysis']), 4)

    def test_forecast_page(self):
        response = self.client.get(reverse('opportunities:forecast'))
        self.assertEqual(response.status_code, 200)


class OpportunityExportImportTest(OpportunityViewsTestCase):

    def test_csv_export(self):
        response = self.client.get(reverse('opportunities:opportunity_export'), {'format': 'csv'})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b'\xef\xbb\xbf'))
        content = response.content.decode('utf-8-sig')
        self.assertTrue(content.startswith('ID;Name;Stage;Amount'))
        self.assertIn('Own deal', content)
        self.assertNotIn('Foreign deal', content)

    def test_xlsx_export(self):
        response = self.client.get(reverse('opportunities:opportunity_export'), {'format': 'xlsx'})

        workbook = openpyxl.load_workbook(BytesIO(response.content))
        sheet = workbook.active
        self.assertEqual(sheet.cell(row=1, column=1).value, 'ID')
        self.assertEqual(sheet.cell(row=2, column=2).value, 'Own deal')

    def test_template_download(self):
        self.client.login(email='admin@test.com', password='testpass123')
        response = self.client.get(reverse('opportunities:opportunity_import_template'))

        lines = response.content.decode('utf-8-sig').splitlines()
        self.assertEqual(len(lines), 2)
        self.assertIn('alice@example.com', lines[1])

    def test_sales_cannot_import(self):
        response = self.client.get(reverse('opportunities:opportunity_import'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_import(self):
        manager = User.objects.create_user(email='manager@test.com', password='testpass123', role='manager')
        company = Company.objects.create(name='Acme', owner=manager)
        self.client.login(email='manager@test.com', password='testpass123')

        content = (
            'ID;Name;Stage;Amount;Probability;Expected close date;Contact;Company;Contact email\n'
            ';Imported deal;negociation;1 234,50;;2025-12-31;Alice;acme;alice@example.com\n'
            ';;;;;;;;\n'
            ';Unknown contact;nouveau;10;;2025-12-31;Bob;;bob@example.com\n'
        )
        upload = SimpleUploadedFile('opportunities.csv', content.encode('utf-8'), content_type='text/csv')

        response = self.client.post(
            reverse('opportunities:opportunity_import'), {'file': upload}, HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        data = response.json()
        self.assertEqual(data['success'], 1)
        self.assertEqual(data['skipped'], 1)
        self.assertEqual(len(data['errors']), 1)
        self.assertTrue(data['errors'][0].startswith('Row 4:'))

        opportunity = Opportunity.objects.get(name='Imported deal')
        self.assertEqual(opportunity.amount, Decimal('1234.50'))
        self.assertEqual(opportunity.probability, 75)
        self.assertEqual(opportunity.company, company)
        self.assertEqual(opportunity.owner, manager)

    def test_import_rejects_non_utf8_file(self):
        User.objects.create_user(email='manager@test.com', password='testpass123', role='manager')
        self.client.login(email='manager@test.com', password='testpass123')

        content = 'ID;Name\n;Zoé deal\n'.encode('latin-1')
        upload = SimpleUploadedFile('opportunities.csv', content, content_type='text/csv')

        response = self.client.post(
            reverse('opportunities:opportunity_import'), {'file': upload}, HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        self.assertEqual(response.status_code, 422)
        self.assertIn('file', response.json()['errors'])
        self.assertFalse(Opportunity.objects.filter(name='Zoé deal').exists())
