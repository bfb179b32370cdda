"""
Google Calendar Tests
=====================

Test Coverage:
1. OAuth URL (scopes, offline access, consent prompt, state)
2. Callback: state check, token exchange, credential storage
3. Token refresh keeps the previous refresh token
4. Event listing window and event payloads (all-day exclusive end)
5. Google events API: create, update, delete, not connected, API failure
6. Disconnect

Run tests:
    docker compose exec web python manage.py test apps.events.tests.test_google
"""

import json
from datetime import date, datetime, timedelta
from unittest.mock import patch, MagicMock
from urllib.parse import urlparse, parse_qs

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from apps.events import google_api
from apps.events.models import GoogleCredential
from apps.events.views import OAUTH_STATE_SESSION_KEY

User = get_user_model()

GOOGLE_SETTINGS = {
    'GOOGLE_CLIENT_ID': 'client-id',
    'GOOGLE_CLIENT_SECRET': 'client-secret',
    'GOOGLE_REDIRECT_URI': 'http://testserver/calendar/google/callback/',
}


def fake_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = json.dumps(payload or {})
    return response


@override_settings(**GOOGLE_SETTINGS)
class GoogleOAuthTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='sales@test.com', password='testpass123')

    def test_auth_url(self):
        query = parse_qs(urlparse(google_api.build_auth_url('abc')).query)

        self.assertEqual(query['access_type'], ['offline'])
        self.assertEqual(query['prompt'], ['consent'])
        self.assertEqual(query['state'], ['abc'])
        self.assertEqual(query['client_id'], ['client-id'])
        self.assertIn('https://www.googleapis.com/auth/calendar', query['scope'][0])
        self.assertIn('userinfo.email', query['scope'][0])
        self.assertIn('userinfo.profile', query['scope'][0])

    def test_connect_returns_url_for_json_callers(self):
        response = self.client.get(reverse('events:google_connect'), HTTP_ACCEPT='application/json')

        self.assertEqual(response.status_code, 200)
        state = self.client.session[OAUTH_STATE_SESSION_KEY]
        self.assertIn(f'state={state}', response.json()['auth_url'])

    def test_connect_redirects_browsers(self):
        response = self.client.get(reverse('events:google_connect'))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith(google_api.AUTH_URL))

    @override_settings(GOOGLE_CLIENT_ID='')
    def test_connect_without_configuration(self):
        response = self.client.get(reverse('events:google_connect'), HTTP_ACCEPT='application/json')
        self.assertEqual(response.status_code, 503)

    @patch('apps.events.google_api.requests.request')
    def test_callback_stores_credential(self, mock_request):
        mock_request.side_effect = [
            fake_response(200, {'access_token': 'at-1', 'refresh_token': 'rt-1', 'expires_in': 3600,
                                'token_type': 'Bearer', 'scope': 'calendar'}),
            fake_response(200, {'id': 'g-42', 'email': 'sales@gmail.com'}),
        ]
        session = self.client.session
        session[OAUTH_STATE_SESSION_KEY] = 'good-state'
        session.save()

        response = self.client.get(reverse('events:google_callback'), {'code': 'auth-code', 'state': 'good-state'})

        self.assertRedirects(response, reverse('events:calendar'), fetch_redirect_response=False)
        credential = GoogleCredential.objects.get(user=self.user)
        self.assertEqual(credential.access_token, 'at-1')
        self.assertEqual(credential.refresh_token, 'rt-1')
        self.assertEqual(credential.google_email, 'sales@gmail.com')
        self.assertGreater(credential.expires_at, timezone.now())

        method, url = mock_request.call_args_list[0][0]
        self.assertEqual((method, url), ('POST', google_api.TOKEN_URL))
        self.assertEqual(mock_request.call_args_list[0][1]['data']['grant_type'], 'authorization_code')

    @patch('apps.events.google_api.requests.request')
    def test_callback_rejects_wrong_state(self, mock_request):
        session = self.client.session
        session[OAUTH_STATE_SESSION_KEY] = 'good-state'
        session.save()

        self.client.get(reverse('events:google_callback'), {'code': 'auth-code', 'state': 'forged'})

        mock_request.assert_not_called()
        self.assertFalse(GoogleCredential.objects.exists())

    @patch('apps.events.google_api.requests.request')
    def test_callback_with_refused_code(self, mock_request):
        mock_request.return_value = fake_response(400, {'error': 'invalid_grant', 'error_description': 'Bad code'})
        session = self.client.session
        session[OAUTH_STATE_SESSION_KEY] = 'good-state'
        session.save()

        response = self.client.get(reverse('events:google_callback'), {'code': 'x', 'state': 'good-state'})

        self.assertEqual(response.status_code, 302)
        self.assertFalse(GoogleCredential.objects.exists())

    def test_disconnect(self):
        GoogleCredential.objects.create(user=self.user, access_token='at')

        response = self.client.post(reverse('events:google_disconnect'), HTTP_X_REQUESTED_WITH='XMLHttpRequest')

        self.assertEqual(response.json(), {'success': True})
        self.assertFalse(GoogleCredential.objects.exists())


@override_settings(**GOOGLE_SETTINGS)
class GoogleCalendarClientTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.credential = GoogleCredential.objects.create(
            user=self.user, access_token='old-token', refresh_token='rt-1',
            expires_at=timezone.now() - timedelta(minutes=5),
        )

    @patch('apps.events.google_api.requests.request')
    def test_expired_token_is_refreshed_and_refresh_token_kept(self, mock_request):
        mock_request.side_effect = [
            fake_response(200, {'access_token': 'new-token', 'expires_in': 3600}),
            fake_response(200, {'items': [{'id': 'e1', 'summary': 'Standup',
                                           'start': {'dateTime': '2030-05-01T09:00:00+02:00'},
                                           'end': {'dateTime': '2030-05-01T09:15:00+02:00'}}]}),
        ]

        success, items, error = google_api.GoogleCalendarClient(self.credential).list_events()

        self.assertTrue(success)
        self.assertEqual(items[0]['id'], 'e1')
        self.credential.refresh_from_db()
        self.assertEqual(self.credential.access_token, 'new-token')
        self.assertEqual(self.credential.refresh_token, 'rt-1')

        list_kwargs = mock_request.call_args_list[1][1]
        self.assertEqual(list_kwargs['headers']['Authorization'], 'Bearer new-token')
        self.assertEqual(list_kwargs['params']['singleEvents'], 'true')
        self.assertEqual(list_kwargs['params']['orderBy'], 'startTime')

    @patch('apps.events.google_api.requests.request')
    def test_list_window(self, mock_request):
        self.credential.expires_at = timezone.now() + timedelta(hours=1)
        self.credential.save()
        mock_request.return_value = fake_response(200, {'items': []})

        google_api.GoogleCalendarClient(self.credential).list_events()

        params = mock_request.call_args[1]['params']
        time_min = datetime.fromisoformat(params['timeMin'])
        time_max = datetime.fromisoformat(params['timeMax'])
        now = timezone.now()
        self.assertTrue(now - timedelta(days=32) < time_min < now - timedelta(days=27))
        self.assertTrue(now + timedelta(days=180) < time_max < now + timedelta(days=185))

    @patch('apps.events.google_api.requests.request')
    def test_refresh_failure_raises(self, mock_request):
        mock_request.return_value = fake_response(400, {'error': 'invalid_grant'})

        with self.assertRaises(google_api.GoogleCalendarError):
            google_api.GoogleCalendarClient(self.credential).list_events()

    @patch('apps.events.google_api.requests.request')
    def test_timeout_is_reported(self, mock_request):
        self.credential.expires_at = None
        self.credential.save()
        mock_request.side_effect = requests.exceptions.Timeout()

        success, data, error = google_api.GoogleCalendarClient(self.credential).create_event({'summary': 'X'})

        self.assertFalse(success)
        self.assertIsNone(data)
        self.assertIn('timeout', error.lower())

    def test_all_day_body_has_exclusive_end(self):
        body = google_api.event_body('Offsite', date(2030, 5, 1), date(2030, 5, 2), all_day=True)

        self.assertEqual(body['start'], {'date': '2030-05-01'})
        self.assertEqual(body['end'], {'date': '2030-05-03'})

    def test_timed_body_uses_datetime(self):
        start = timezone.make_aware(datetime(2030, 5, 1, 10, 0))
        body = google_api.event_body('Call', start, start + timedelta(hours=1),
                                     attendees=['alice@example.com'])

        self.assertIn('dateTime', body['start'])
        self.assertEqual(body['start']['timeZone'], settings.TIME_ZONE)
        self.assertEqual(body['attendees'], [{'email': 'alice@example.com'}])


@override_settings(**GOOGLE_SETTINGS)
class GoogleEventsApiTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='sales@test.com', password='testpass123')

    def _connect(self):
        return GoogleCredential.objects.create(user=self.user, access_token='at', refresh_token='rt',
                                               expires_at=timezone.now() + timedelta(hours=1))

    def test_not_connected_is_401(self):
        response = self.client.get(reverse('events:google_events'))
        self.assertEqual(response.status_code, 401)

    @patch('apps.events.google_api.requests.request')
    def test_list(self, mock_request):
        self._connect()
        mock_request.return_value = fake_response(200, {'items': [
            {'id': 'e1', 'summary': 'Offsite', 'start': {'date': '2030-05-01'}, 'end': {'date': '2030-05-02'}},
        ]})

        response = self.client.get(reverse('events:google_events'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]['title'], 'Offsite')
        self.assertTrue(response.json()[0]['all_day'])

    @patch('apps.events.google_api.requests.request')
    def test_create_all_day_event(self, mock_request):
        self._connect()
        mock_request.return_value = fake_response(200, {
            'id': 'new-id', 'summary': 'Offsite', 'start': {'date': '2030-05-01'}, 'end': {'date': '2030-05-03'},
        })

        response = self.client.post(reverse('events:google_events'), json.dumps({
            'summary': 'Offsite', 'start': '2030-05-01', 'end': '2030-05-02',
        }), content_type='application/json')

        self.assertEqual(response.status_code, 201)
        method, url = mock_request.call_args[0]
        self.assertEqual(method, 'POST')
        self.assertTrue(url.endswith('/calendars/primary/events'))
        self.assertEqual(mock_request.call_args[1]['json']['end'], {'date': '2030-05-03'})

    def test_create_validation(self):
        self._connect()

        response = self.client.post(reverse('events:google_events'), json.dumps({
            'summary': 'Call', 'start': '2030-05-01T10:00:00', 'end': '2030-05-01T09:00:00',
        }), content_type='application/json')

        self.assertEqual(response.status_code, 422)
        self.assertIn('end', response.json()['errors'])

    @patch('apps.events.google_api.requests.request')
    def test_update(self, mock_request):
        self._connect()
        mock_request.return_value = fake_response(200, {'id': 'e1', 'summary': 'Moved',
                                                        'start': {'dateTime': '2030-05-01T11:00:00+02:00'},
                                                        'end': {'dateTime': '2030-05-01T12:00:00+02:00'}})

        response = self.client.put(reverse('events:google_event_detail', args=['e1']), json.dumps({
            'summary': 'Moved', 'start': '2030-05-01T11:00:00', 'end': '2030-05-01T12:00:00',
        }), content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(mock_request.call_args[0][0], 'PATCH')
        self.assertTrue(mock_request.call_args[0][1].endswith('/events/e1'))

    @patch('apps.events.google_api.requests.request')
    def test_delete(self, mock_request):
        self._connect()
        mock_request.return_value = fake_response(204)

        response = self.client.delete(reverse('events:google_event_detail', args=['e1']))

        self.assertEqual(response.status_code, 204)
        self.assertEqual(mock_request.call_args[0][0], 'DELETE')

    @patch('apps.events.google_api.requests.request')
    def test_api_failure_is_502(self, mock_request):
        self._connect()
        mock_request.return_value = fake_response(500, {'error': {'message': 'Backend Error'}})

        response = self.client.get(reverse('events:google_events'))

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['error'], 'Backend Error')
