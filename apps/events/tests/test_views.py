"""
Local Calendar Views Tests
==========================

Test Coverage:
1. Calendar page with the Google connection status
2. Event list is scoped to the current user and carries the effective colour
3. Create with defaults, validation (end after start, colour, attendees)
4. Partial update and delete by the owner, 403 for other users
5. Types and priorities metadata

Run tests:
    docker compose exec web python manage.py test apps.events.tests.test_views
"""

import json
from datetime import datetime, timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from apps.contacts.models import Contact
from apps.events.models import Event, GoogleCredential

User = get_user_model()


def aware(*args):
    return timezone.make_aware(datetime(*args))


class CalendarViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.other = User.objects.create_user(email='other@test.com', password='testpass123', role='sales')
        self.client.login(email='sales@test.com', password='testpass123')

        self.event = Event.objects.create(
            user=self.user, title='Demo', type='call',
            start_datetime=aware(2030, 5, 1, 10, 0), end_datetime=aware(2030, 5, 1, 11, 0),
        )
        self.foreign = Event.objects.create(
            user=self.other, title='Not mine',
            start_datetime=aware(2030, 5, 2, 10, 0), end_datetime=aware(2030, 5, 2, 11, 0),
        )

    def _post_json(self, url, payload):
        return self.client.post(url, json.dumps(payload), content_type='application/json')

    def test_calendar_page(self):
        response = self.client.get(reverse('events:calendar'))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.context['google_connected'])
        self.assertEqual(response.context['event_count'], 1)

    def test_calendar_page_shows_google_account(self):
        GoogleCredential.objects.create(user=self.user, access_token='token', google_email='me@gmail.com')

        response = self.client.get(reverse('events:calendar'))

        self.assertTrue(response.context['google_connected'])
        self.assertContains(response, 'me@gmail.com')

    def test_list_only_returns_own_events(self):
        response = self.client.get(reverse('events:event_list'))

        self.assertEqual(response.status_code, 200)
        rows = response.json()
        self.assertEqual([row['title'] for row in rows], ['Demo'])
        self.assertEqual(rows[0]['color'], '#10b981')

    def test_list_window(self):
        response = self.client.get(reverse('events:event_list'), {'start': '2030-06-01', 'end': '2030-06-30'})
        self.assertEqual(response.json(), [])

    def test_create_with_defaults(self):
        response = self._post_json(reverse('events:event_list'), {
            'title': 'Kick-off',
            'start_datetime': '2030-05-03T09:00:00',
            'end_datetime': '2030-05-03T10:00:00',
            'attendees': ['alice@example.com', 'bob@example.com'],
        })

        self.assertEqual(response.status_code, 201)
        event = Event.objects.get(title='Kick-off')
        self.assertEqual(event.user, self.user)
        self.assertEqual(event.type, 'meeting')
        self.assertEqual(event.priority, 'medium')
        self.assertEqual(event.attendees, ['alice@example.com', 'bob@example.com'])
        self.assertEqual(response.json()['event']['color'], '#3b82f6')

    def test_create_with_links_and_colour(self):
        contact = Contact.objects.create(name='Alice', user=self.user)

        response = self._post_json(reverse('events:event_list'), {
            'title': 'Lunch', 'type': 'other', 'color': '#123ABC', 'contact_id': contact.pk,
            'start_datetime': '2030-05-03T12:00:00', 'end_datetime': '2030-05-03T13:30:00',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['event']['contact_id'], contact.pk)
        self.assertEqual(response.json()['event']['color'], '#123ABC')

    def test_end_must_follow_start(self):
        response = self._post_json(reverse('events:event_list'), {
            'title': 'Backwards',
            'start_datetime': '2030-05-03T10:00:00',
            'end_datetime': '2030-05-03T09:00:00',
        })

        self.assertEqual(response.status_code, 422)
        self.assertIn('end_datetime', response.json()['errors'])

    def test_invalid_colour_and_attendee(self):
        response = self._post_json(reverse('events:event_list'), {
            'title': 'Bad', 'color': 'red', 'attendees': 'alice@example.com, nope',
            'start_datetime': '2030-05-03T10:00:00', 'end_datetime': '2030-05-03T11:00:00',
        })

        self.assertEqual(response.status_code, 422)
        self.assertIn('color', response.json()['errors'])
        self.assertIn('attendees', response.json()['errors'])

    def test_invalid_json_body(self):
        response = self.client.post(reverse('events:event_list'), 'not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_partial_update(self):
        response = self.client.put(
            reverse('events:event_detail', args=[self.event.pk]),
            json.dumps({'title': 'Demo v2', 'priority': 'high'}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.event.refresh_from_db()
        self.assertEqual(self.event.title, 'Demo v2')
        self.assertEqual(self.event.priority, 'high')
        self.assertEqual(self.event.type, 'call')
        self.assertEqual(self.event.start_datetime, aware(2030, 5, 1, 10, 0))

    def test_update_rejects_end_before_start(self):
        response = self.client.put(
            reverse('events:event_detail', args=[self.event.pk]),
            json.dumps({'end_datetime': (self.event.start_datetime - timedelta(hours=1)).isoformat()}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 422)

    def test_delete(self):
        response = self.client.delete(reverse('events:event_detail', args=[self.event.pk]))

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Event.objects.filter(pk=self.event.pk).exists())

    def test_other_users_event_is_403(self):
        url = reverse('events:event_detail', args=[self.foreign.pk])

        self.assertEqual(self.client.put(url, json.dumps({'title': 'X'}), content_type='application/json').status_code, 403)
        self.assertEqual(self.client.delete(url).status_code, 403)
        self.assertTrue(Event.objects.filter(pk=self.foreign.pk, title='Not mine').exists())

    def test_types_and_priorities(self):
        types = self.client.get(reverse('events:event_types')).json()
        priorities = self.client.get(reverse('events:event_priorities')).json()

        self.assertIn({'value': 'deadline', 'label': 'Deadline', 'color': '#ef4444'}, types)
        self.assertEqual([row['value'] for row in priorities], ['low', 'medium', 'high'])

    def test_login_required(self):
        self.client.logout()
        response = self.client.get(reverse('events:event_list'))
        self.assertEqual(response.status_code, 302)
