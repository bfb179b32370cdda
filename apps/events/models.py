from datetime import timedelta

from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


color_validator = RegexValidator(r'^#[0-9a-fA-F]{6}$', _('Enter a colour as #RRGGBB.'))


class EventQuerySet(models.QuerySet):

    def for_user(self, user):
        return self.filter(user=user)

    def between(self, start, end):
        """Events overlapping the [start, end] window."""
        return self.filter(start_datetime__lte=end, end_datetime__gte=start)


class Event(models.Model):
    """
    A local calendar entry owned by one user

    Each type carries a label and a default colour; an explicit colour on the
    event wins over the type colour.
    """

    TYPES = {
        'meeting': {'label': _('Meeting'), 'color': '#3b82f6'},
        'call': {'label': _('Call'), 'color': '#10b981'},
        'deadline': {'label': _('Deadline'), 'color': '#ef4444'},
        'task': {'label': _('Task'), 'color': '#f59e0b'},
        'follow_up': {'label': _('Follow-up'), 'color': '#8b5cf6'},
        'presentation': {'label': _('Presentation'), 'color': '#ec4899'},
        'other': {'label': _('Other'), 'color': '#6b7280'},
    }

    PRIORITIES = {
        'low': {'label': _('Low'), 'color': '#6b7280'},
        'medium': {'label': _('Medium'), 'color': '#f59e0b'},
        'high': {'label': _('High'), 'color': '#ef4444'},
    }

    TYPE_CHOICES = [(key, value['label']) for key, value in TYPES.items()]
    PRIORITY_CHOICES = [(key, value['label']) for key, value in PRIORITIES.items()]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='events')

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField()
    all_day = models.BooleanField(default=False)

    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='meeting')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    color = models.CharField(max_length=7, blank=True, validators=[color_validator])
    location = models.CharField(max_length=255, blank=True)
    attendees = models.JSONField(default=list, blank=True, help_text='List of attendee emails')

    contact = models.ForeignKey('contacts.Contact', on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='events')
    company = models.ForeignKey('contacts.Company', on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='events')
    opportunity = models.ForeignKey('opportunities.Opportunity', on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='events')
    reminder = models.ForeignKey('reminders.Reminder', on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='events')

    is_recurring = models.BooleanField(default=False)
    recurrence_config = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    meeting_link = models.URLField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        verbose_name = 'Event'
        verbose_name_plural = 'Events'
        ordering = ['start_datetime']
        indexes = [
            models.Index(fields=['user', 'start_datetime'], name='event_user_start_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def type_label(self):
        return self.TYPES.get(self.type, self.TYPES['other'])['label']

    @property
    def priority_label(self):
        return self.PRIORITIES.get(self.priority, self.PRIORITIES['medium'])['label']

    @property
    def effective_color(self):
        return self.color or self.TYPES.get(self.type, self.TYPES['other'])['color']

    @property
    def duration(self):
        return self.end_datetime - self.start_datetime

    @property
    def is_past(self):
        return self.end_datetime < timezone.now()


class GoogleCredential(models.Model):
    """OAuth tokens of a user's Google account, one row per user."""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='google_credential')

    google_id = models.CharField(max_length=255, blank=True)
    google_email = models.EmailField(blank=True)
    access_token = models.TextField()
    refresh_token = models.TextField(blank=True)
    token_type = models.CharField(max_length=20, default='Bearer')
    scope = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Google credential'
        verbose_name_plural = 'Google credentials'

    def __str__(self):
        return f"{self.user} ({self.google_email or 'Google'})"

    @property
    def is_expired(self):
        # One minute of margin so a token does not expire mid-request
        if self.expires_at is None:
            return False
        return self.expires_at <= timezone.now() + timedelta(seconds=60)

    def store_token(self, token_data):
        """Apply a token endpoint response. A missing refresh_token keeps the old one."""
        self.access_token = token_data['access_token']
        if token_data.get('refresh_token'):
            self.refresh_token = token_data['refresh_token']
        self.token_type = token_data.get('token_type', self.token_type or 'Bearer')
        self.scope = token_data.get('scope', self.scope)
        expires_in = token_data.get('expires_in')
        self.expires_at = timezone.now() + timedelta(seconds=int(expires_in)) if expires_in else None
