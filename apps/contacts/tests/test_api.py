"""
Contacts & Companies API Tests
==============================

Test Coverage:
1. Contact access by role (admin, manager, sales, anonymous)
2. Contact list filters, search, sort and pagination envelope
3. Contact create / update / delete
4. Quick search and unassigned contacts
5. Companies: list annotations, by-status, statuses
6. Company contacts: nested list, attach, detach

Run tests:
    docker compose exec web python manage.py test apps.contacts.tests.test_api
"""

from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model

from apps.contacts.models import Contact, Company, CompanyStatus

User = get_user_model()


class ContactAccessTest(TestCase):
    """Role based visibility of contacts through the API"""

    def setUp(self):
        self.client = Client()

        self.admin = User.objects.create_user(
            email='admin@test.com', password='testpass123',
            first_name='Ada', last_name='Admin', role='admin',
        )
        self.manager = User.objects.create_user(
            email='manager@test.com', password='testpass123',
            first_name='Max', last_name='Manager', role='manager',
        )
        self.sales = User.objects.create_user(
            email='sales@test.com', password='testpass123',
            first_name='Sam', last_name='Sales', role='sales',
        )
        self.other_sales = User.objects.create_user(
            email='other@test.com', password='testpass123',
            first_name='Olga', last_name='Other', role='sales',
        )

        self.own_contact = Contact.objects.create(name='Alice Martin', email='alice@example.com', user=self.sales)
        self.other_contact = Contact.objects.create(name='Bob Durand', email='bob@example.com', user=self.other_sales)

    def test_admin_sees_all_contacts(self):
        self.client.login(email='admin@test.com', password='testpass123')
        response = self.client.get(reverse('api:contact-list'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta']['total'], 2)

    def test_manager_sees_all_contacts(self):
        self.client.login(email='manager@test.com', password='testpass123')
        response = self.client.get(reverse('api:contact-list'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta']['total'], 2)

    def test_sales_sees_only_own_contacts(self):
        self.client.login(email='sales@test.com', password='testpass123')
        response = self.client.get(reverse('api:contact-list'))

        self.assertEqual(response.status_code, 200)
        ids = [row['id'] for row in response.json()['data']]
        self.assertEqual(ids, [self.own_contact.pk])

    def test_sales_can_view_own_contact(self):
        self.client.login(email='sales@test.com', password='testpass123')
        response = self.client.get(reverse('api:contact-detail', args=[self.own_contact.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], 'Alice Martin')

    def test_sales_forbidden_on_other_contact(self):
        self.client.login(email='sales@test.com', password='testpass123')
        response = self.client.get(reverse('api:contact-detail', args=[self.other_contact.pk]))

        self.assertEqual(response.status_code, 403)

    def test_sales_cannot_delete_contacts(self):
        self.client.login(email='sales@test.com', password='testpass123')
        response = self.client.delete(reverse('api:contact-detail', args=[self.own_contact.pk]))

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Contact.objects.filter(pk=self.own_contact.pk).exists())

    def test_anonymous_is_rejected(self):
        response = self.client.get(reverse('api:contact-list'))
        self.assertEqual(response.status_code, 401)
        self.assertIn('Basic', response['WWW-Authenticate'])


class ContactListApiTest(TestCase):
    """Filters, sorting and the pagination envelope"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='admin@test.com', password='testpass123',
            first_name='Ada', last_name='Admin', role='admin',
        )
        self.company = Company.objects.create(name='Acme', owner=self.user)

        Contact.objects.create(name='Alice Martin', email='alice@example.com', phone='0612345678', user=self.user, company=self.company)
        Contact.objects.create(name='Bob Durand', email='bob@example.com', user=self.user)
        Contact.objects.create(name='Charlie Alison', email='charlie@example.com', user=self.user)

        self.client.login(email='admin@test.com', password='testpass123')

    def test_response_envelope(self):
        response = self.client.get(reverse('api:contact-list'))
        body = response.json()

        self.assertIn('data', body)
        self.assertIn('meta', body)
        self.assertIn('links', body)
        self.assertEqual(body['meta']['per_page'], 15)

    def test_filter_name_is_partial(self):
        response = self.client.get(reverse('api:contact-list'), {'filter[name]': 'ali'})
        names = sorted(row['name'] for row in response.json()['data'])

        self.assertEqual(names, ['Alice Martin', 'Charlie Alison'])

    def test_filter_email_and_phone_are_exact(self):
        url = reverse('api:contact-list')

        self.assertEqual(self.client.get(url, {'filter[email]': 'example.com'}).json()['data'], [])
        rows = self.client.get(url, {'filter[email]': 'bob@example.com'}).json()['data']
        self.assertEqual([row['name'] for row in rows], ['Bob Durand'])

        self.assertEqual(self.client.get(url, {'filter[phone]': '06123'}).json()['data'], [])
        rows = self.client.get(url, {'filter[phone]': '0612345678'}).json()['data']
        self.assertEqual([row['name'] for row in rows], ['Alice Martin'])

    def test_search_matches_phone(self):
        response = self.client.get(reverse('api:contact-list'), {'search': '06123'})
        self.assertEqual([row['name'] for row in response.json()['data']], ['Alice Martin'])

    def test_sort_descending_by_name(self):
        response = self.client.get(reverse('api:contact-list'), {'sort': '-name'})
        names = [row['name'] for row in response.json()['data']]

        self.assertEqual(names, ['Charlie Alison', 'Bob Durand', 'Alice Martin'])

    def test_unknown_sort_field_is_ignored(self):
        response = self.client.get(reverse('api:contact-list'), {'sort': 'password'})
        self.assertEqual(response.status_code, 200)

    def test_per_page_is_clamped(self):
        response = self.client.get(reverse('api:contact-list'), {'per_page': 500})
        self.assertEqual(response.json()['meta']['per_page'], 100)

        response = self.client.get(reverse('api:contact-list'), {'per_page': 0})
        self.assertEqual(response.json()['meta']['per_page'], 1)

    def test_scope_unassigned(self):
        response = self.client.get(reverse('api:contact-list'), {'scope': 'unassigned'})
        names = sorted(row['name'] for row in response.json()['data'])

        self.assertEqual(names, ['Bob Durand', 'Charlie Alison'])

    def test_quick_search_limit_and_shape(self):
        for i in range(20):
            Contact.objects.create(name=f'Search Target {i}', email=f'target{i}@example.com', user=self.user)

        response = self.client.get(reverse('api:contact-search'), {'q': 'target'})
        rows = response.json()

        self.assertEqual(len(rows), 15)
        self.assertEqual(set(rows[0].keys()), {'id', 'name', 'email', 'company'})

    def test_unassigned_endpoint(self):
        response = self.client.get(reverse('api:contact-unassigned'))
        self.assertEqual(response.json()['meta']['total'], 2)

        response = self.client.get(reverse('api:contact-unassigned'), {'scope': 'all'})
        self.assertEqual(response.json()['meta']['total'], 3)


class ContactWriteApiTest(TestCase):
    """Create, update and delete through the API"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='sales@test.com', password='testpass123',
            first_name='Sam', last_name='Sales', role='sales',
        )
        self.client.login(email='sales@test.com', password='testpass123')

    def test_create_sets_owner(self):
        response = self.client.post(
            reverse('api:contact-list'),
            {'name': 'New Person', 'email': 'new@example.com', 'phone': '+33 612 345 6789'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 201)
        contact = Contact.objects.get(email='new@example.com')
        self.assertEqual(contact.user, self.user)

    def test_create_validates_fields(self):
        response = self.client.post(
            reverse('api:contact-list'),
            {'name': 'x' * 51, 'email': 'not-an-email', 'phone': 'abc', 'latitude': '95'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 400)
        errors = response.json()
        self.assertIn('name', errors)
        self.assertIn('email', errors)
        self.assertIn('phone', errors)
        self.assertIn('latitude', errors)

    def test_duplicate_email_rejected(self):
        Contact.objects.create(name='Existing', email='taken@example.com', user=self.user)

        response = self.client.post(
            reverse('api:contact-list'),
            {'name': 'Another', 'email': 'TAKEN@example.com'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.json())

    def test_update_own_contact(self):
        contact = Contact.objects.create(name='Before', user=self.user)

        response = self.client.patch(
            reverse('api:contact-detail', args=[contact.pk]),
            {'name': 'After'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        contact.refresh_from_db()
        self.assertEqual(contact.name, 'After')

    def test_admin_delete_returns_204(self):
        User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        contact = Contact.objects.create(name='Gone', user=self.user)

        self.client.login(email='admin@test.com', password='testpass123')
        response = self.client.delete(reverse('api:contact-detail', args=[contact.pk]))

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Contact.objects.filter(pk=contact.pk).exists())


class CompanyApiTest(TestCase):
    """Companies endpoints"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='admin@test.com', password='testpass123',
            first_name='Ada', last_name='Admin', role='admin',
        )
        self.acme = Company.objects.create(name='Acme', domain='acme.com', status=CompanyStatus.CLIENT, owner=self.user)
        self.globex = Company.objects.create(name='Globex', industry='Energy', owner=self.user)

        Contact.objects.create(name='Alice', email='alice@acme.com', company=self.acme, user=self.user)
        Contact.objects.create(name='Bob', email='bob@acme.com', company=self.acme, user=self.user)

        self.client.login(email='admin@test.com', password='testpass123')

    def test_list_has_contacts_count(self):
        response = self.client.get(reverse('api:company-list'), {'sort': '-contacts_count'})
        first = response.json()['data'][0]

        self.assertEqual(first['name'], 'Acme')
        self.assertEqual(first['contacts_count'], 2)

    def test_filter_by_status(self):
        response = self.client.get(reverse('api:company-list'), {'status': 'Client'})
        self.assertEqual([row['name'] for row in response.json()['data']], ['Acme'])

    def test_create_defaults_owner_to_current_user(self):
        response = self.client.post(reverse('api:company-list'), {'name': 'Initech'}, content_type='application/json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Company.objects.get(name='Initech').owner, self.user)

    def test_create_rejects_unknown_status(self):
        response = self.client.post(
            reverse('api:company-list'),
            {'name': 'Initech', 'status': 'Unknown'},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_by_status(self):
        response = self.client.get(reverse('api:company-by-status', args=['Prospect']))
        self.assertEqual([row['name'] for row in response.json()['data']], ['Globex'])

    def test_statuses(self):
        response = self.client.get(reverse('api:company-statuses'))
        values = [row['value'] for row in response.json()['data']]
        self.assertEqual(values, ['Prospect', 'Client', 'Inactif'])

    def test_sales_cannot_update_someone_elses_company(self):
        User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='sales@test.com', password='testpass123')

        response = self.client.patch(
            reverse('api:company-detail', args=[self.acme.pk]),
            {'name': 'Hijacked'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 403)


class CompanyContactsApiTest(TestCase):
    """Nested company contacts, attach and detach"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='admin@test.com', password='testpass123', role='admin',
        )
        self.acme = Company.objects.create(name='Acme', owner=self.user)
        self.globex = Company.objects.create(name='Globex', owner=self.user)

        self.alice = Contact.objects.create(name='Alice', email='alice@acme.com', company=self.acme, user=self.user)
        self.bob = Contact.objects.create(name='Bob', email='bob@globex.com', company=self.globex, user=self.user)
        self.loner = Contact.objects.create(name='Lonely', email='lonely@example.com', user=self.user)

        self.client.login(email='admin@test.com', password='testpass123')

    def test_list_contacts_of_company(self):
        response = self.client.get(reverse('api:company-contact-list', args=[self.acme.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['name'] for row in response.json()['data']], ['Alice'])
        self.assertEqual(response.json()['meta']['per_page'], 10)

    def test_contact_of_other_company_is_404(self):
        response = self.client.get(reverse('api:company-contact-detail', args=[self.acme.pk, self.bob.pk]))
        self.assertEqual(response.status_code, 404)

    def test_create_injects_company(self):
        response = self.client.post(
            reverse('api:company-contact-list', args=[self.acme.pk]),
            {'name': 'Carol', 'email': 'carol@acme.com'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Contact.objects.get(email='carol@acme.com').company, self.acme)

    def test_attach(self):
        response = self.client.post(
            reverse('api:company-contact-attach', args=[self.acme.pk]),
            {'contact_id': self.loner.pk},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.loner.refresh_from_db()
        self.assertEqual(self.loner.company, self.acme)

    def test_attach_twice_is_422(self):
        response = self.client.post(
            reverse('api:company-contact-attach', args=[self.acme.pk]),
            {'contact_id': self.alice.pk},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 422)

    def test_detach(self):
        response = self.client.post(reverse('api:company-contact-detach', args=[self.acme.pk, self.alice.pk]))

        self.assertEqual(response.status_code, 200)
        self.alice.refresh_from_db()
        self.assertIsNone(self.alice.company)
