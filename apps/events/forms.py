import json

from django import forms
from django.core.validators import validate_email
from django.core.exceptions import ValidationError
from django.utils.dateparse import parse_date, parse_datetime
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.contacts.models import Contact, Company
from apps.opportunities.models import Opportunity
from apps.reminders.models import Reminder
from .models import Event


class EmailListField(forms.Field):
    """Accepts a list, a JSON array or a comma separated string of emails."""

    def to_python(self, value):
        if value in (None, '', []):
            return []
        if isinstance(value, str):
            value = value.strip()
            if value.startswith('['):
                try:
                    value = json.loads(value)
                except ValueError:
                    raise ValidationError(_('Enter a list of email addresses.'))
            else:
                value = value.split(',')
        if not isinstance(value, (list, tuple)):
            raise ValidationError(_('Enter a list of email addresses.'))
        return [str(item).strip() for item in value if str(item).strip()]

    def validate(self, value):
        super().validate(value)
        for email in value:
            try:
                validate_email(email)
            except ValidationError:
                raise ValidationError(_('%(email)s is not a valid email address.'), params={'email': email})


class EventForm(forms.ModelForm):

    attendees = EmailListField(required=False)
    recurrence_config = forms.JSONField(required=False)

    class Meta:
        model = Event
        fields = [
            'title', 'description', 'start_datetime', 'end_datetime', 'all_day',
            'type', 'priority', 'color', 'location', 'attendees',
            'contact', 'company', 'opportunity', 'reminder',
            'is_recurring', 'recurrence_config', 'notes', 'meeting_link',
        ]

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['type'].required = False
        self.fields['priority'].required = False

        if user is not None and not user.is_admin():
            self.fields['contact'].queryset = Contact.objects.filter(user=user)
            self.fields['company'].queryset = Company.objects.filter(owner=user)
            self.fields['opportunity'].queryset = Opportunity.objects.filter(owner=user)
        self.fields['reminder'].queryset = Reminder.objects.filter(user=user) if user else Reminder.objects.all()

    def clean_type(self):
        return self.cleaned_data.get('type') or 'meeting'

    def clean_priority(self):
        return self.cleaned_data.get('priority') or 'medium'

    def clean_recurrence_config(self):
        return self.cleaned_data.get('recurrence_config') or {}

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_datetime')
        end = cleaned_data.get('end_datetime')

        if start and end and end <= start:
            self.add_error('end_datetime', _('The end must be after the start.'))

        return cleaned_data


class GoogleEventForm(forms.Form):
    """
    Event pushed to Google Calendar

    `start` / `end` accept a date (all-day event) or a date and time.
    """

    summary = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    location = forms.CharField(max_length=255, required=False)
    start = forms.CharField()
    end = forms.CharField()
    all_day = forms.BooleanField(required=False)
    attendees = EmailListField(required=False)

    def _parse(self, field):
        value = self.cleaned_data.get(field, '').strip()
        parsed = parse_date(value)
        if parsed is not None:
            return parsed
        parsed = parse_datetime(value)
        if parsed is not None:
            return parsed if timezone.is_aware(parsed) else timezone.make_aware(parsed)
        raise ValidationError(_('Enter a valid date or date and time.'))

    def clean_start(self):
        return self._parse('start')

    def clean_end(self):
        return self._parse('end')

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start')
        end = cleaned_data.get('end')
        if start is None or end is None:
            return cleaned_data

        # A bare date means an all-day event
        if not hasattr(start, 'hour') or not hasattr(end, 'hour'):
            cleaned_data['all_day'] = True

        if cleaned_data['all_day']:
            start_day = timezone.localdate(start) if hasattr(start, 'hour') else start
            end_day = timezone.localdate(end) if hasattr(end, 'hour') else end
            if end_day < start_day:
                self.add_error('end', _('The end must not be before the start.'))
        elif end <= start:
            self.add_error('end', _('The end must be after the start.'))

        return cleaned_data
