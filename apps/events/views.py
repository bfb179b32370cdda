import json
import logging
import secrets

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.forms.models import model_to_dict
from django.http import JsonResponse, HttpResponse, QueryDict
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime, parse_date
from django.utils.translation import gettext as _
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from apps.accounts.decorators import is_ajax
from . import google_api
from .forms import EventForm, GoogleEventForm
from .models import Event, GoogleCredential


logger = logging.getLogger(__name__)

OAUTH_STATE_SESSION_KEY = 'google_oauth_state'
LINK_FIELDS = ('contact', 'company', 'opportunity', 'reminder')


def _request_data(request):
    """
    Body of a JSON, form or urlencoded PUT/PATCH request as a dict

    Returns None when a JSON body can not be decoded. `contact_id` style
    keys are accepted for the linked records.
    """
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
    elif request.method == 'POST':
        data = request.POST.dict()
    else:
        data = QueryDict(request.body).dict()

    for field in LINK_FIELDS:
        if f'{field}_id' in data and field not in data:
            data[field] = data.pop(f'{field}_id')
    return data


def _day(value):
    """'2025-03-01' or an ISO date and time -> date, None when unparsable."""
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is not None:
        return parsed.date()
    return parse_date(value)


def _iso(value):
    if value is None:
        return None
    return timezone.localtime(value).isoformat()


def event_payload(event):
    return {
        'id': event.pk,
        'title': event.title,
        'description': event.description,
        'start': _iso(event.start_datetime),
        'end': _iso(event.end_datetime),
        'all_day': event.all_day,
        'type': event.type,
        'type_label': str(event.type_label),
        'priority': event.priority,
        'priority_label': str(event.priority_label),
        'color': event.effective_color,
        'location': event.location,
        'attendees': event.attendees,
        'contact_id': event.contact_id,
        'company_id': event.company_id,
        'opportunity_id': event.opportunity_id,
        'reminder_id': event.reminder_id,
        'is_recurring': event.is_recurring,
        'recurrence_config': event.recurrence_config,
        'notes': event.notes,
        'meeting_link': event.meeting_link,
        'source': 'local',
    }


def _forbidden():
    return JsonResponse({'success': False, 'error': _('You do not have permission to modify this event.')},
                        status=403)


def _bad_body():
    return JsonResponse({'success': False, 'error': _('Invalid request body.')}, status=400)


# CALENDAR PAGE

@login_required
def calendar_view(request):
    credential = GoogleCredential.objects.filter(user=request.user).first()
    now = timezone.now()

    context = {
        'upcoming_events': Event.objects.for_user(request.user).filter(end_datetime__gte=now)[:10],
        'event_count': Event.objects.for_user(request.user).count(),
        'google_configured': bool(settings.GOOGLE_CLIENT_ID),
        'google_connected': credential is not None,
        'google_email': credential.google_email if credential else '',
        'types': Event.TYPES,
        'priorities': Event.PRIORITIES,
        'form': EventForm(user=request.user),
    }
    return render(request, 'events/calendar.html', context)


# LOCAL EVENTS API

@login_required
@require_http_methods(['GET', 'POST'])
def events_api(request):
    """GET lists the user's events (optionally ?start=&end=), POST creates one."""
    if request.method == 'GET':
        events = Event.objects.for_user(request.user)

        start = _day(request.GET.get('start'))
        end = _day(request.GET.get('end'))
        if start and end:
            events = events.filter(start_datetime__date__lte=end, end_datetime__date__gte=start)

        return JsonResponse([event_payload(event) for event in events], safe=False)

    data = _request_data(request)
    if data is None:
        return _bad_body()

    form = EventForm(data, user=request.user)
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    event = form.save(commit=False)
    event.user = request.user
    event.save()
    logger.info(f"Event {event.pk} created by {request.user.email}")

    return JsonResponse({'success': True, 'event': event_payload(event)}, status=201)


@login_required
@require_http_methods(['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
def event_detail_api(request, pk):
    event = get_object_or_404(Event, pk=pk)
    if event.user_id != request.user.id:
        return _forbidden()

    if request.method == 'GET':
        return JsonResponse(event_payload(event))

    if request.method == 'DELETE':
        event.delete()
        logger.info(f"Event {pk} deleted by {request.user.email}")
        return HttpResponse(status=204)

    data = _request_data(request)
    if data is None:
        return _bad_body()

    # Missing keys keep their current value
    current = model_to_dict(event, fields=EventForm.Meta.fields)
    form = EventForm({**current, **data}, instance=event, user=request.user)
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    event = form.save()
    logger.info(f"Event {event.pk} updated by {request.user.email}")

    return JsonResponse({'success': True, 'event': event_payload(event)})


@login_required
@require_GET
def event_types_api(request):
    return JsonResponse([
        {'value': key, 'label': str(value['label']), 'color': value['color']}
        for key, value in Event.TYPES.items()
    ], safe=False)


@login_required
@require_GET
def event_priorities_api(request):
    return JsonResponse([
        {'value': key, 'label': str(value['label']), 'color': value['color']}
        for key, value in Event.PRIORITIES.items()
    ], safe=False)


# GOOGLE CALENDAR

def _google_error(message, status):
    return JsonResponse({'success': False, 'error': str(message)}, status=status)


@login_required
@require_GET
def google_connect_view(request):
    """Start the OAuth flow. JSON callers get the URL, browsers are redirected."""
    if not settings.GOOGLE_CLIENT_ID:
        if is_ajax(request):
            return _google_error(_('Google Calendar is not configured.'), 503)
        messages.error(request, _('Google Calendar is not configured.'))
        return redirect('events:calendar')

    state = secrets.token_urlsafe(32)
    request.session[OAUTH_STATE_SESSION_KEY] = state
    auth_url = google_api.build_auth_url(state)

    if is_ajax(request):
        return JsonResponse({'auth_url': auth_url})
    return redirect(auth_url)


@login_required
@require_GET
def google_callback_view(request):
    expected_state = request.session.pop(OAUTH_STATE_SESSION_KEY, None)

    if request.GET.get('error'):
        logger.warning(f"Google authorization refused for {request.user.email}: {request.GET['error']}")
        messages.error(request, _('Google authorization was cancelled.'))
        return redirect('events:calendar')

    if not expected_state or request.GET.get('state') != expected_state:
        logger.warning(f"Invalid OAuth state in Google callback for {request.user.email}")
        messages.error(request, _('Invalid Google authorization response.'))
        return redirect('events:calendar')

    code = request.GET.get('code')
    if not code:
        messages.error(request, _('Missing Google authorization code.'))
        return redirect('events:calendar')

    try:
        credential = google_api.connect_account(request.user, code)
    except google_api.GoogleCalendarError as e:
        logger.error(f"Google connection failed for {request.user.email}: {e}")
        messages.error(request, _('Could not connect Google Calendar: %(error)s') % {'error': e})
        return redirect('events:calendar')

    messages.success(request, _('Google Calendar connected (%(email)s).') % {'email': credential.google_email})
    return redirect('events:calendar')


@login_required
@require_POST
def google_disconnect_view(request):
    deleted, _detail = GoogleCredential.objects.filter(user=request.user).delete()
    if deleted:
        logger.info(f"Google Calendar disconnected for {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True})
    messages.success(request, _('Google Calendar disconnected.'))
    return redirect('events:calendar')


def _google_body(form):
    data = form.cleaned_data
    return google_api.event_body(
        summary=data['summary'],
        start=data['start'],
        end=data['end'],
        all_day=data['all_day'],
        description=data['description'],
        location=data['location'],
        attendees=data['attendees'],
    )


@login_required
@require_http_methods(['GET', 'POST'])
def google_events_api(request):
    try:
        client = google_api.GoogleCalendarClient.for_user(request.user)

        if request.method == 'GET':
            success, items, error = client.list_events()
            if not success:
                return _google_error(error, 502)
            return JsonResponse([google_api.serialize_google_event(item) for item in items], safe=False)

        data = _request_data(request)
        if data is None:
            return _bad_body()
        form = GoogleEventForm(data)
        if not form.is_valid():
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)

        success, item, error = client.create_event(_google_body(form))
    except google_api.GoogleCalendarError as e:
        return _google_error(e, 401)

    if not success:
        return _google_error(error, 502)

    logger.info(f"Google event {item.get('id')} created by {request.user.email}")
    return JsonResponse({'success': True, 'event': google_api.serialize_google_event(item)}, status=201)


@login_required
@require_http_methods(['PUT', 'PATCH', 'POST', 'DELETE'])
def google_event_detail_api(request, event_id):
    try:
        client = google_api.GoogleCalendarClient.for_user(request.user)

        if request.method == 'DELETE':
            success, _data, error = client.delete_event(event_id)
            if not success:
                return _google_error(error, 502)
            logger.info(f"Google event {event_id} deleted by {request.user.email}")
            return HttpResponse(status=204)

        data = _request_data(request)
        if data is None:
            return _bad_body()
        form = GoogleEventForm(data)
        if not form.is_valid():
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)

        success, item, error = client.update_event(event_id, _google_body(form))
    except google_api.GoogleCalendarError as e:
        return _google_error(e, 401)

    if not success:
        return _google_error(error, 502)

    logger.info(f"Google event {event_id} updated by {request.user.email}")
    return JsonResponse({'success': True, 'event': google_api.serialize_google_event(item)})
