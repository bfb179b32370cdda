"""
Documents API Tests
===================

Test Coverage:
1. Upload: storage path, version 1, default name, tags and links
2. Upload validation: extension, size, links, tags
3. Visibility by role and list filters
4. Metadata update, soft and hard delete
5. Download / preview dispositions
6. Link attach / detach and new versions

Run tests:
    docker compose exec web python manage.py test apps.documents.tests.test_api
"""

import json
import os
import shutil
import tempfile
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, Client, override_settings
from django.urls import reverse

from apps.contacts.models import Company, Contact
from apps.core.services import settings_service
from apps.documents.models import Document, DocumentLink
from apps.documents.services import store_document

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp()


def pdf(name='contract.pdf', content=b'%PDF-1.4 test'):
    return SimpleUploadedFile(name, content, content_type='application/pdf')


def stored_files(prefix):
    return [name for _root, _dirs, files in os.walk(MEDIA_ROOT) for name in files if name.startswith(prefix)]


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class DocumentApiTestCase(TestCase):

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        settings_service.clear_cache()
        self.addCleanup(settings_service.clear_cache)
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        self.manager = User.objects.create_user(email='manager@test.com', password='testpass123', role='manager')
        self.sales = User.objects.create_user(
            email='sales@test.com', password='testpass123',
            first_name='Sam', last_name='Sales', role='sales',
        )
        self.other = User.objects.create_user(email='other@test.com', password='testpass123', role='sales')

    def login(self, user):
        self.client.login(email=user.email, password='testpass123')


class DocumentUploadTest(DocumentApiTestCase):

    def setUp(self):
        super().setUp()
        self.company = Company.objects.create(name='Acme', owner=self.sales)
        self.contact = Contact.objects.create(name='Alice', email='alice@example.com', user=self.sales)
        self.login(self.sales)

    def test_upload_stores_file_and_first_version(self):
        response = self.client.post(reverse('api:document-list'), {
            'file': pdf(),
            'description': 'Signed contract',
            'tags': 'contract, 2025',
            'links': json.dumps([
                {'type': 'company', 'id': self.company.pk, 'role': 'contract'},
                {'type': 'contact', 'id': self.contact.pk},
            ]),
        })

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['name'], 'contract')
        self.assertEqual(data['extension'], 'pdf')
        self.assertEqual(data['visibility'], 'private')
        self.assertEqual(data['tags'], ['2025', 'contract'])
        self.assertEqual(data['owner']['id'], self.sales.pk)
        self.assertEqual(data['companies'], [{'id': self.company.pk, 'name': 'Acme', 'role': 'contract'}])
        self.assertEqual(data['contacts'][0]['id'], self.contact.pk)

        document = Document.objects.get(pk=data['id'])
        self.assertTrue(document.file.name.startswith('documents/'))
        self.assertIn(str(document.uuid), document.file.name)
        self.assertTrue(document.file.name.endswith('/contract.pdf'))
        self.assertEqual(document.versions.get().version, 1)

    def test_disallowed_extension_is_rejected(self):
        upload = SimpleUploadedFile('virus.exe', b'MZ', content_type='application/octet-stream')
        response = self.client.post(reverse('api:document-list'), {'file': upload})

        self.assertEqual(response.status_code, 400)
        self.assertIn('file', response.json())
        self.assertFalse(Document.objects.exists())

    def test_file_over_the_size_setting_is_rejected(self):
        settings_service.set('upload_max_file_size', 1, 'upload')

        response = self.client.post(reverse('api:document-list'), {'file': pdf(content=b'x' * (1024 * 1024 + 1))})

        self.assertEqual(response.status_code, 400)
        self.assertIn('file', response.json())

    def test_invalid_links_are_rejected(self):
        response = self.client.post(reverse('api:document-list'), {
            'file': pdf(),
            'links': json.dumps([{'type': 'opportunity', 'id': 1}]),
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('links', response.json())

    def test_unknown_link_target_rolls_back_upload(self):
        response = self.client.post(reverse('api:document-list'), {
            'file': pdf(name='orphan.pdf'),
            'links': json.dumps([{'type': 'company', 'id': 999999}]),
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Document.all_objects.exists())
        self.assertEqual(stored_files('orphan'), [])

    @patch('apps.documents.services.attach_link', side_effect=DatabaseError('link insert failed'))
    def test_database_error_removes_stored_file(self, mock_attach):
        with self.assertRaises(DatabaseError):
            store_document(self.sales, pdf(name='broken.pdf'), links=[{'type': 'company', 'id': self.company.pk}])

        self.assertEqual(stored_files('broken'), [])
        self.assertFalse(Document.all_objects.exists())

    def test_tag_longer_than_30_characters_is_rejected(self):
        response = self.client.post(reverse('api:document-list'), {'file': pdf(), 'tags': 'x' * 31})
        self.assertEqual(response.status_code, 400)
        self.assertIn('tags', response.json())

    def test_upload_requires_permission(self):
        readonly = User.objects.create_user(email='nobody@test.com', password='testpass123', role='')
        self.login(readonly)

        response = self.client.post(reverse('api:document-list'), {'file': pdf()})
        self.assertEqual(response.status_code, 403)


class DocumentAccessTest(DocumentApiTestCase):

    def setUp(self):
        super().setUp()
        self.own = store_document(self.sales, pdf('own.pdf'), tags=['contract'])
        self.foreign = store_document(self.other, pdf('foreign.pdf'), visibility='team')
        self.image = store_document(self.other, SimpleUploadedFile('logo.png', b'\x89PNG', content_type='image/png'))

    def test_sales_lists_own_documents_only(self):
        self.login(self.sales)
        response = self.client.get(reverse('api:document-list'))

        self.assertEqual(response.status_code, 200)
        ids = [row['id'] for row in response.json()['data']]
        self.assertEqual(ids, [self.own.pk])

    def test_team_visibility_grants_nothing_to_others(self):
        self.login(self.sales)
        response = self.client.get(reverse('api:document-detail', args=[self.foreign.pk]))
        self.assertEqual(response.status_code, 403)

    def test_manager_sees_everything(self):
        self.login(self.manager)
        response = self.client.get(reverse('api:document-list'))
        self.assertEqual(response.json()['meta']['total'], 3)

    def test_filters(self):
        self.login(self.admin)
        url = reverse('api:document-list')

        self.assertEqual(self.client.get(url, {'type': 'image/'}).json()['meta']['total'], 1)
        self.assertEqual(self.client.get(url, {'type': 'pdf'}).json()['meta']['total'], 2)
        self.assertEqual(self.client.get(url, {'tag': 'contract'}).json()['meta']['total'], 1)
        self.assertEqual(self.client.get(url, {'search': 'foreign'}).json()['meta']['total'], 1)
        self.assertEqual(self.client.get(url, {'owner_id': self.other.pk}).json()['meta']['total'], 2)

    def test_per_page_is_clamped(self):
        self.login(self.admin)
        response = self.client.get(reverse('api:document-list'), {'per_page': 500})
        self.assertEqual(response.json()['meta']['per_page'], 100)

    def test_company_filter(self):
        company = Company.objects.create(name='Acme', owner=self.admin)
        DocumentLink.objects.create(document=self.image, company=company)
        self.login(self.admin)

        response = self.client.get(reverse('api:document-list'), {'company_id': company.pk})
        self.assertEqual([row['id'] for row in response.json()['data']], [self.image.pk])

    def test_anonymous_is_rejected(self):
        response = self.client.get(reverse('api:document-list'))
        self.assertEqual(response.status_code, 401)


class DocumentChangeTest(DocumentApiTestCase):

    def setUp(self):
        super().setUp()
        self.document = store_document(self.sales, pdf())
        self.login(self.sales)

    def test_update_metadata_and_tags(self):
        response = self.client.patch(
            reverse('api:document-detail', args=[self.document.pk]),
            data=json.dumps({'name': 'Final contract', 'tags': ['signed']}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], 'Final contract')
        self.assertEqual(response.json()['tags'], ['signed'])

    def test_invalid_visibility(self):
        response = self.client.patch(
            reverse('api:document-detail', args=[self.document.pk]),
            data=json.dumps({'visibility': 'public'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_other_sales_cannot_update(self):
        self.login(self.other)
        response = self.client.patch(
            reverse('api:document-detail', args=[self.document.pk]),
            data=json.dumps({'name': 'Hijacked'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)

    def test_soft_delete_keeps_row_and_file(self):
        response = self.client.delete(reverse('api:document-detail', args=[self.document.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'ok'})
        self.assertFalse(Document.objects.filter(pk=self.document.pk).exists())
        trashed = Document.all_objects.get(pk=self.document.pk)
        self.assertIsNotNone(trashed.deleted_at)
        self.assertTrue(trashed.file.storage.exists(trashed.file.name))

    def test_hard_delete_removes_files(self):
        storage = self.document.file.storage
        name = self.document.file.name

        response = self.client.delete(reverse('api:document-detail', args=[self.document.pk]) + '?hard_delete=true')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Document.all_objects.filter(pk=self.document.pk).exists())
        self.assertFalse(storage.exists(name))

    def test_download_is_attachment(self):
        response = self.client.get(reverse('api:document-download', args=[self.document.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Disposition'].startswith('attachment'))
        self.assertIn('contract.pdf', response['Content-Disposition'])
        self.assertEqual(b''.join(response.streaming_content), b'%PDF-1.4 test')
        response.close()

    def test_preview_is_inline(self):
        response = self.client.get(reverse('api:document-preview', args=[self.document.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Disposition'].startswith('inline'))
        response.close()

    def test_attach_and_detach_link(self):
        contact = Contact.objects.create(name='Alice', user=self.sales)
        url = reverse('api:document-links', args=[self.document.pk])

        response = self.client.post(url, {'type': 'contact', 'id': contact.pk, 'role': 'signatory'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['contacts'], [{'id': contact.pk, 'name': 'Alice', 'role': 'signatory'}])

        response = self.client.delete(url, data=json.dumps({'type': 'contact', 'id': contact.pk}),
                                      content_type='application/json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['contacts'], [])

    def test_attach_same_target_twice_updates_role(self):
        company = Company.objects.create(name='Acme', owner=self.sales)
        url = reverse('api:document-links', args=[self.document.pk])

        self.client.post(url, {'type': 'company', 'id': company.pk, 'role': 'draft'})
        self.client.post(url, {'type': 'company', 'id': company.pk, 'role': 'final'})

        link = DocumentLink.objects.get(document=self.document)
        self.assertEqual(link.role, 'final')

    def test_new_version(self):
        url = reverse('api:document-versions', args=[self.document.pk])

        response = self.client.post(url, {'file': pdf('contract-v2.pdf', b'%PDF-1.4 second')})

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['version']['version'], 2)
        self.assertEqual(data['document']['original_filename'], 'contract-v2.pdf')

        self.document.refresh_from_db()
        self.assertIn('/v2-contract-v2', self.document.file.name)
        self.assertEqual(self.document.size_bytes, len(b'%PDF-1.4 second'))

        versions = self.client.get(url).json()
        self.assertEqual([version['version'] for version in versions], [2, 1])
