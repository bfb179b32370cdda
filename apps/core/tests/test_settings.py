"""
CRM Settings Tests
==================

Test Coverage:
1. Default settings are seeded by migration
2. settings_service cache: get, set, clear
3. Endpoints: index (admin only), public, single key, bulk and single update
4. Value cleaning (None, lists, strings) and unknown keys
5. Reset and test email

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_settings
"""

import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.test import TestCase, Client
from django.urls import reverse

from apps.core.models import CrmSetting
from apps.core.services import settings_service

User = get_user_model()

AJAX = {'HTTP_X_REQUESTED_WITH': 'XMLHttpRequest'}


class SettingsServiceTest(TestCase):

    def setUp(self):
        settings_service.clear_cache()
        self.addCleanup(settings_service.clear_cache)

    def test_defaults_are_seeded(self):
        self.assertEqual(CrmSetting.get_value('company_name'), 'CRM Catalyst')
        self.assertEqual(settings_service.get_upload_settings()['max_file_size'], 10)

    def test_get_reads_through_cache(self):
        self.assertEqual(settings_service.get('default_currency'), 'EUR')

        CrmSetting.objects.filter(key='default_currency').update(value='USD')
        self.assertEqual(settings_service.get('default_currency'), 'EUR')

        settings_service.clear_cache()
        self.assertEqual(settings_service.get('default_currency'), 'USD')

    def test_set_clears_cache(self):
        settings_service.get('default_currency')
        settings_service.set('default_currency', 'GBP', 'general')
        self.assertEqual(settings_service.get('default_currency'), 'GBP')

    def test_set_value_stores_none_as_empty_string(self):
        CrmSetting.set_value('company_logo', None, 'identity')
        self.assertEqual(CrmSetting.get_value('company_logo'), '')

    def test_grouped_and_public(self):
        grouped = CrmSetting.get_all_grouped()
        public = CrmSetting.get_public_settings()

        self.assertIn('smtp_host', grouped['email'])
        self.assertIn('company_name', public)
        self.assertNotIn('smtp_password', public)

    def test_seed_command_keeps_existing_values(self):
        settings_service.set('company_name', 'Renamed', 'identity')
        CrmSetting.objects.filter(key='language').delete()

        call_command('seed_crm_settings')

        self.assertEqual(CrmSetting.get_value('company_name'), 'Renamed')
        self.assertEqual(CrmSetting.get_value('language'), 'fr')

        call_command('seed_crm_settings', '--overwrite')
        self.assertEqual(CrmSetting.get_value('company_name'), 'CRM Catalyst')


class SettingsViewsTest(TestCase):

    def setUp(self):
        settings_service.clear_cache()
        self.addCleanup(settings_service.clear_cache)
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        self.sales = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='admin@test.com', password='testpass123')

    def _post_json(self, name, payload):
        return self.client.post(reverse(name), json.dumps(payload), content_type='application/json', **AJAX)

    def test_index_json(self):
        response = self.client.get(reverse('core:settings'), **AJAX)

        self.assertEqual(response.status_code, 200)
        self.assertIn('identity', response.json()['data'])

    def test_index_page(self):
        response = self.client.get(reverse('core:settings'))
        self.assertTemplateUsed(response, 'core/settings.html')

    def test_sales_user_is_denied(self):
        self.client.login(email='sales@test.com', password='testpass123')

        self.assertEqual(self.client.get(reverse('core:settings'), **AJAX).status_code, 403)
        self.assertEqual(self._post_json('core:settings_update', {'general': {'language': 'en'}}).status_code, 403)

    def test_public_settings_for_any_user(self):
        self.client.login(email='sales@test.com', password='testpass123')

        data = self.client.get(reverse('core:settings_public')).json()['data']

        self.assertEqual(data['company_name'], 'CRM Catalyst')
        self.assertNotIn('smtp_password', data)

    def test_setting_detail(self):
        response = self.client.get(reverse('core:setting_detail', args=['smtp_port']))
        self.assertEqual(response.json()['data']['value'], 587)

        response = self.client.get(reverse('core:setting_detail', args=['nope']))
        self.assertEqual(response.status_code, 404)

    def test_bulk_update_cleans_values_and_skips_unknown_keys(self):
        response = self._post_json('core:settings_update', {
            'identity': {'company_name': '  Acme CRM  ', 'company_logo': None, 'not_a_setting': 'x'},
            'sales': {'lead_sources': ['Website', '', None, 'Fair']},
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['updated'], 3)
        self.assertEqual(settings_service.get('company_name'), 'Acme CRM')
        self.assertEqual(CrmSetting.get_value('company_logo'), '')
        self.assertEqual(settings_service.get('lead_sources'), ['Website', 'Fair'])
        self.assertFalse(CrmSetting.objects.filter(key='not_a_setting').exists())

    def test_bulk_update_requires_payload(self):
        response = self._post_json('core:settings_update', {})
        self.assertEqual(response.status_code, 400)

    def test_single_update(self):
        response = self._post_json('core:setting_update', {'key': 'primary_color', 'value': '#112233',
                                                           'category': 'branding'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(settings_service.get('primary_color'), '#112233')

    def test_single_update_validation(self):
        self.assertEqual(self._post_json('core:setting_update', {'value': 'x'}).status_code, 422)
        self.assertEqual(self._post_json('core:setting_update', {'key': 'timezone', 'value': 'UTC',
                                                                 'category': 'identity'}).status_code, 422)
        self.assertEqual(self._post_json('core:setting_update', {'key': 'x' * 101}).status_code, 422)
        self.assertEqual(self._post_json('core:setting_update', {'key': 'unknown_key'}).status_code, 404)

    def test_reset(self):
        settings_service.set('company_name', 'Renamed', 'identity')
        CrmSetting.objects.create(key='stray', value='x')

        response = self.client.post(reverse('core:settings_reset'), **AJAX)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(settings_service.get('company_name'), 'CRM Catalyst')
        self.assertFalse(CrmSetting.objects.filter(key='stray').exists())

    def test_test_email(self):
        response = self._post_json('core:settings_test_email', {'email': 'ops@example.com'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ops@example.com'])

    @patch('apps.core.services.EmailMessage.send', side_effect=OSError('Connection refused'))
    def test_test_email_failure(self, mock_send):
        response = self._post_json('core:settings_test_email', {'email': 'ops@example.com'})

        self.assertEqual(response.status_code, 502)
        self.assertFalse(response.json()['success'])
