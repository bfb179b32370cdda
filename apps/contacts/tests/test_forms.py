"""
Contact Forms Tests
===================

Test Coverage:
1. ContactForm - name, email, phone, coordinates
2. CompanyForm - status, domain cleaning, owner lock for sales
3. ContactImportForm - extension, size and encoding
4. ContactImportRowForm - required fields and duplicates

Run tests:
    docker compose exec web python manage.py test apps.contacts.tests.test_forms
"""

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.contrib.auth import get_user_model

from apps.contacts.forms import ContactForm, CompanyForm, ContactImportForm, ContactImportRowForm
from apps.contacts.models import Contact

User = get_user_model()


class ContactFormTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')

    def test_valid_form(self):
        form = ContactForm(data={
            'name': 'Alice Martin',
            'email': 'Alice@Example.com',
            'phone': '0612345678',
            'status': 'nouveau',
        })

        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['email'], 'alice@example.com')

    def test_name_is_required(self):
        form = ContactForm(data={'name': '', 'status': 'nouveau'})
        self.assertFalse(form.is_valid())
        self.assertIn('name', form.errors)

    def test_name_max_50(self):
        form = ContactForm(data={'name': 'a' * 51, 'status': 'nouveau'})
        self.assertFalse(form.is_valid())
        self.assertIn('name', form.errors)

    def test_email_must_be_unique(self):
        Contact.objects.create(name='Existing', email='taken@example.com', user=self.user)

        form = ContactForm(data={'name': 'New', 'email': 'taken@example.com', 'status': 'nouveau'})
        self.assertFalse(form.is_valid())
        self.assertIn('email', form.errors)

    def test_same_email_allowed_on_edit(self):
        contact = Contact.objects.create(name='Existing', email='taken@example.com', user=self.user)

        form = ContactForm(data={'name': 'Renamed', 'email': 'taken@example.com', 'status': 'nouveau'}, instance=contact)
        self.assertTrue(form.is_valid(), form.errors)

    def test_phone_format(self):
        form = ContactForm(data={'name': 'Bob', 'phone': '12-ab', 'status': 'nouveau'})
        self.assertFalse(form.is_valid())
        self.assertIn('phone', form.errors)

    def test_empty_email_becomes_none(self):
        form = ContactForm(data={'name': 'Bob', 'email': '', 'status': 'nouveau'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertIsNone(form.cleaned_data['email'])

    def test_coordinates_range(self):
        form = ContactForm(data={'name': 'Bob', 'status': 'nouveau', 'latitude': '91', 'longitude': '-181'})
        self.assertFalse(form.is_valid())
        self.assertIn('latitude', form.errors)
        self.assertIn('longitude', form.errors)


class CompanyFormTest(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        self.sales = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')

    def test_domain_is_cleaned(self):
        form = CompanyForm(data={'name': 'Acme', 'domain': 'https://www.Acme.com/', 'status': 'Prospect'}, user=self.admin)

        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['domain'], 'acme.com')

    def test_invalid_status(self):
        form = CompanyForm(data={'name': 'Acme', 'status': 'Unknown'}, user=self.admin)
        self.assertFalse(form.is_valid())
        self.assertIn('status', form.errors)

    def test_sales_cannot_choose_owner(self):
        form = CompanyForm(user=self.sales)
        self.assertTrue(form.fields['owner'].disabled)

    def test_admin_can_choose_owner(self):
        form = CompanyForm(user=self.admin)
        self.assertFalse(form.fields['owner'].disabled)


class ContactImportFormTest(TestCase):

    def test_accepts_csv(self):
        upload = SimpleUploadedFile('contacts.csv', b'name,email\nA,a@example.com\n', content_type='text/csv')
        form = ContactImportForm(data={}, files={'file': upload})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.rows, [(2, {'name': 'A', 'email': 'a@example.com'})])

    def test_rejects_latin1_file(self):
        upload = SimpleUploadedFile('contacts.csv', 'name,email\nZoé,zoe@example.com\n'.encode('latin-1'), content_type='text/csv')
        form = ContactImportForm(data={}, files={'file': upload})

        self.assertFalse(form.is_valid())
        self.assertIn('UTF-8', form.errors['file'][0])

    def test_rejects_other_extensions(self):
        upload = SimpleUploadedFile('contacts.xlsx', b'data', content_type='application/octet-stream')
        form = ContactImportForm(data={}, files={'file': upload})
        self.assertFalse(form.is_valid())
        self.assertIn('file', form.errors)

    @override_settings(CONTACT_IMPORT_MAX_FILE_SIZE=10)
    def test_rejects_large_files(self):
        upload = SimpleUploadedFile('contacts.csv', b'name,email\n' + b'x' * 50, content_type='text/csv')
        form = ContactImportForm(data={}, files={'file': upload})
        self.assertFalse(form.is_valid())


class ContactImportRowFormTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')

    def test_email_required(self):
        form = ContactImportRowForm(data={'name': 'Alice', 'email': ''})
        self.assertFalse(form.is_valid())
        self.assertIn('email', form.errors)

    def test_duplicate_email(self):
        Contact.objects.create(name='Existing', email='alice@example.com', user=self.user)

        form = ContactImportRowForm(data={'name': 'Alice', 'email': 'ALICE@example.com'})
        self.assertFalse(form.is_valid())
        self.assertIn('email', form.errors)

    def test_phone_max_length(self):
        form = ContactImportRowForm(data={'name': 'Alice', 'email': 'alice@example.com', 'phone': '1' * 21})
        self.assertFalse(form.is_valid())
        self.assertIn('phone', form.errors)
