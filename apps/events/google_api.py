"""
This module handles communication with the Google OAuth and Calendar APIs.

Features:
- Build the OAuth consent URL and exchange the returned code
- Refresh expired access tokens
- List, create, update and delete events of the primary calendar
- Handle API errors
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.utils import timezone

from apps.core.utils import add_months
from .models import GoogleCredential

logger = logging.getLogger(__name__)

AUTH_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
TOKEN_URL = 'https://oauth2.googleapis.com/token'
USERINFO_URL = 'https://www.googleapis.com/oauth2/v2/userinfo'

SCOPES = [
    'https://www.googleapis.com/auth/calendar',
    'https://www.googleapis.com/auth/userinfo.email',
    'https://www.googleapis.com/auth/userinfo.profile',
]

REQUEST_TIMEOUT = 30


class GoogleCalendarError(Exception):
    """
    Raised when a user's Google account can not be used

    Missing credential or a refresh token rejected by Google.
    """
    pass


def _send(method: str, url: str, **kwargs) -> Tuple[bool, Optional[Dict], Optional[str]]:
    """Perform an HTTP call and return (success, data, error)."""
    try:
        logger.info(f"Making {method} request to {url}")
        response = requests.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
        logger.info(f"Response status: {response.status_code}")

        if response.status_code == 204:
            return True, None, None

        if response.status_code in [200, 201]:
            return True, response.json(), None

        error_message = f"API returned {response.status_code}"
        try:
            error_data = response.json()
        except ValueError:
            error_message = response.text or error_message
        else:
            error = error_data.get('error')
            if isinstance(error, dict):
                error_message = error.get('message', error_message)
            elif error:
                error_message = error_data.get('error_description', error)

        logger.error(f"Google API error: {error_message}")
        return False, None, error_message

    except requests.exceptions.Timeout:
        error_message = "Request timeout - Google API did not respond"
        logger.error(error_message)
        return False, None, error_message

    except requests.exceptions.ConnectionError:
        error_message = "Connection error - Could not reach Google API"
        logger.error(error_message)
        return False, None, error_message

    except requests.exceptions.RequestException as e:
        error_message = f"Request error: {str(e)}"
        logger.error(error_message)
        return False, None, error_message


# OAUTH

def build_auth_url(state: str) -> str:
    params = {
        'client_id': settings.GOOGLE_CLIENT_ID,
        'redirect_uri': settings.GOOGLE_REDIRECT_URI,
        'response_type': 'code',
        'scope': ' '.join(SCOPES),
        'access_type': 'offline',
        'prompt': 'consent',
        'include_granted_scopes': 'true',
        'state': state,
    }
    return f"{AUTH_URL}?{urlencode(params)}"


def exchange_code(code: str) -> Tuple[bool, Optional[Dict], Optional[str]]:
    return _send('POST', TOKEN_URL, data={
        'code': code,
        'client_id': settings.GOOGLE_CLIENT_ID,
        'client_secret': settings.GOOGLE_CLIENT_SECRET,
        'redirect_uri': settings.GOOGLE_REDIRECT_URI,
        'grant_type': 'authorization_code',
    })


def fetch_user_info(access_token: str) -> Tuple[bool, Optional[Dict], Optional[str]]:
    return _send('GET', USERINFO_URL, headers={'Authorization': f'Bearer {access_token}'})


def refresh_access_token(refresh_token: str) -> Tuple[bool, Optional[Dict], Optional[str]]:
    return _send('POST', TOKEN_URL, data={
        'refresh_token': refresh_token,
        'client_id': settings.GOOGLE_CLIENT_ID,
        'client_secret': settings.GOOGLE_CLIENT_SECRET,
        'grant_type': 'refresh_token',
    })


def connect_account(user, code: str) -> GoogleCredential:
    """
    Finish the OAuth flow for a user

    Exchanges the code, reads the Google profile and stores the tokens.
    Raises GoogleCalendarError when Google refuses the code.
    """
    success, token_data, error = exchange_code(code)
    if not success:
        raise GoogleCalendarError(error)

    credential = GoogleCredential.objects.filter(user=user).first() or GoogleCredential(user=user)
    credential.store_token(token_data)

    success, profile, error = fetch_user_info(credential.access_token)
    if success and profile:
        credential.google_id = profile.get('id', '')
        credential.google_email = profile.get('email', '')
    else:
        logger.warning(f"Could not read Google profile for {user.email}: {error}")

    credential.save()
    logger.info(f"Google account {credential.google_email or '?'} connected for {user.email}")
    return credential


# PAYLOADS

def event_body(summary, start, end, all_day=False, description='', location='', attendees=None) -> Dict:
    """
    Build a Google event resource

    All-day events use `date` values with an exclusive end, so the end
    is moved one day forward. Timed events use `dateTime` in TIME_ZONE.
    """
    body = {'summary': summary}
    if description:
        body['description'] = description
    if location:
        body['location'] = location
    if attendees:
        body['attendees'] = [{'email': email} for email in attendees]

    if all_day:
        start_date = timezone.localdate(start) if isinstance(start, datetime) else start
        end_date = timezone.localdate(end) if isinstance(end, datetime) else end
        body['start'] = {'date': start_date.isoformat()}
        body['end'] = {'date': (end_date + timedelta(days=1)).isoformat()}
    else:
        body['start'] = {'dateTime': timezone.localtime(start).isoformat(), 'timeZone': settings.TIME_ZONE}
        body['end'] = {'dateTime': timezone.localtime(end).isoformat(), 'timeZone': settings.TIME_ZONE}

    return body


class GoogleCalendarClient:

    BASE_URL = 'https://www.googleapis.com/calendar/v3'
    CALENDAR_ID = 'primary'

    def __init__(self, credential: GoogleCredential):

        self.credential = credential

    @classmethod
    def for_user(cls, user) -> 'GoogleCalendarClient':
        credential = GoogleCredential.objects.filter(user=user).first()
        if credential is None:
            raise GoogleCalendarError('Google Calendar is not connected')
        return cls(credential)

    def _get_headers(self) -> Dict[str, str]:

        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.credential.access_token}',
        }

    def ensure_token(self):
        """Refresh the access token when it has expired."""
        if not self.credential.is_expired:
            return

        if not self.credential.refresh_token:
            raise GoogleCalendarError('Google session expired, please reconnect')

        success, token_data, error = refresh_access_token(self.credential.refresh_token)
        if not success:
            raise GoogleCalendarError(f'Could not refresh Google token: {error}')

        self.credential.store_token(token_data)
        self.credential.save(update_fields=['access_token', 'refresh_token', 'token_type', 'scope',
                                            'expires_at', 'updated_at'])
        logger.info(f"Google token refreshed for user {self.credential.user_id}")

    def _make_request(self, endpoint: str, method: str = 'GET', data: Optional[Dict] = None,
                      params: Optional[Dict] = None) -> Tuple[bool, Optional[Dict], Optional[str]]:

        self.ensure_token()
        url = f"{self.BASE_URL}/calendars/{self.CALENDAR_ID}{endpoint}"
        return _send(method, url, headers=self._get_headers(), json=data, params=params)

    def list_events(self) -> Tuple[bool, Optional[list], Optional[str]]:

        now = timezone.now()
        params = {
            'timeMin': add_months(now, -1).isoformat(),
            'timeMax': add_months(now, 6).isoformat(),
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': 2500,
        }

        success, response_data, error = self._make_request('/events', params=params)
        if success and response_data is not None:
            return True, response_data.get('items', []), None
        return False, None, error

    def create_event(self, body: Dict) -> Tuple[bool, Optional[Dict], Optional[str]]:

        logger.info(f"Creating Google event '{body.get('summary')}'")
        return self._make_request('/events', method='POST', data=body)

    def update_event(self, event_id: str, body: Dict) -> Tuple[bool, Optional[Dict], Optional[str]]:

        logger.info(f"Updating Google event {event_id}")
        return self._make_request(f'/events/{event_id}', method='PATCH', data=body)

    def delete_event(self, event_id: str) -> Tuple[bool, None, Optional[str]]:

        logger.info(f"Deleting Google event {event_id}")
        return self._make_request(f'/events/{event_id}', method='DELETE')


def serialize_google_event(item: Dict) -> Dict:
    """Flatten a Google event resource for the calendar widget."""
    start = item.get('start', {})
    end = item.get('end', {})
    all_day = 'date' in start
    return {
        'id': item.get('id'),
        'title': item.get('summary', ''),
        'description': item.get('description', ''),
        'location': item.get('location', ''),
        'start': start.get('date') or start.get('dateTime'),
        'end': end.get('date') or end.get('dateTime'),
        'all_day': all_day,
        'attendees': [attendee.get('email') for attendee in item.get('attendees', []) if attendee.get('email')],
        'html_link': item.get('htmlLink', ''),
        'source': 'google',
    }
