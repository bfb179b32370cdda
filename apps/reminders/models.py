import re
from datetime import timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.core.utils import add_months


class ReminderQuerySet(models.QuerySet):

    def for_user(self, user):
        return self.filter(user=user)

    def pending(self):
        return self.filter(status=Reminder.STATUS_PENDING)

    def overdue(self):
        return self.pending().filter(reminder_date__lt=timezone.now())

    def today(self):
        return self.pending().filter(reminder_date__date=timezone.localdate())

    def upcoming(self, days=7):
        now = timezone.now()
        return self.pending().filter(reminder_date__range=(now, now + timedelta(days=days)))

    def due_for_notification(self):
        """Pending reminders whose time has come and that were not mailed yet."""
        return self.pending().filter(reminder_date__lte=timezone.now(), notified_at__isnull=True)


class Reminder(models.Model):
    """
    A dated follow-up for a user, optionally about an opportunity or a contact

    Completing a recurring reminder creates the next occurrence until the
    recurrence end date.
    """

    TYPE_FOLLOW_UP = 'follow_up'
    TYPE_MEETING = 'meeting'
    TYPE_CALL = 'call'
    TYPE_EMAIL = 'email'
    TYPE_DEADLINE = 'deadline'
    TYPE_OTHER = 'other'

    TYPE_CHOICES = [
        (TYPE_FOLLOW_UP, _('Follow-up')),
        (TYPE_MEETING, _('Meeting')),
        (TYPE_CALL, _('Call')),
        (TYPE_EMAIL, _('Email')),
        (TYPE_DEADLINE, _('Deadline')),
        (TYPE_OTHER, _('Other')),
    ]

    PRIORITY_CHOICES = [
        ('low', _('Low')),
        ('medium', _('Medium')),
        ('high', _('High')),
    ]

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_SNOOZED = 'snoozed'

    STATUS_CHOICES = [
        (STATUS_PENDING, _('Pending')),
        (STATUS_COMPLETED, _('Completed')),
        (STATUS_SNOOZED, _('Snoozed')),
    ]

    PATTERN_DAILY = 'daily'
    PATTERN_WEEKLY = 'weekly'
    PATTERN_MONTHLY = 'monthly'

    PATTERN_CHOICES = [
        (PATTERN_DAILY, _('Daily')),
        (PATTERN_WEEKLY, _('Weekly')),
        (PATTERN_MONTHLY, _('Monthly')),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reminders')
    opportunity = models.ForeignKey('opportunities.Opportunity', on_delete=models.CASCADE, null=True, blank=True,
                                    related_name='reminders')
    contact = models.ForeignKey('contacts.Contact', on_delete=models.CASCADE, null=True, blank=True,
                                related_name='reminders')

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    reminder_date = models.DateTimeField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_FOLLOW_UP)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    completed_at = models.DateTimeField(null=True, blank=True)
    snoozed_until = models.DateTimeField(null=True, blank=True)
    notified_at = models.DateTimeField(null=True, blank=True, help_text='Set when the due email was sent')

    is_recurring = models.BooleanField(default=False)
    recurrence_pattern = models.CharField(max_length=10, choices=PATTERN_CHOICES, blank=True)
    recurrence_interval = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    recurrence_end_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReminderQuerySet.as_manager()

    class Meta:
        verbose_name = 'Reminder'
        verbose_name_plural = 'Reminders'
        ordering = ['reminder_date']
        indexes = [
            models.Index(fields=['user', 'reminder_date', 'status'], name='reminder_user_date_status_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_pending(self):
        return self.status == self.STATUS_PENDING

    @property
    def is_overdue(self):
        return self.is_pending and self.reminder_date < timezone.now()

    @property
    def is_due_today(self):
        return self.is_pending and timezone.localdate(self.reminder_date) == timezone.localdate()

    @property
    def is_due_soon(self):
        now = timezone.now()
        return self.is_pending and now < self.reminder_date <= now + timedelta(hours=24)

    def next_occurrence(self):
        """Date of the next occurrence, None past the end date or without a pattern."""
        if not self.is_recurring or not self.recurrence_pattern:
            return None

        interval = self.recurrence_interval or 1
        if self.recurrence_pattern == self.PATTERN_DAILY:
            next_date = self.reminder_date + timedelta(days=interval)
        elif self.recurrence_pattern == self.PATTERN_WEEKLY:
            next_date = self.reminder_date + timedelta(weeks=interval)
        elif self.recurrence_pattern == self.PATTERN_MONTHLY:
            next_date = add_months(self.reminder_date, interval)
        else:
            return None

        if self.recurrence_end_date and timezone.localdate(next_date) > self.recurrence_end_date:
            return None
        return next_date

    def mark_completed(self):
        """
        Complete the reminder. Returns the next occurrence when one was created.

        A reminder that is already completed is left alone and gets no new occurrence.
        """
        now = timezone.now()
        updated = Reminder.objects.filter(pk=self.pk).exclude(status=self.STATUS_COMPLETED).update(
            status=self.STATUS_COMPLETED, completed_at=now, updated_at=now,
        )
        if not updated:
            self.refresh_from_db(fields=['status', 'completed_at'])
            return None

        self.status = self.STATUS_COMPLETED
        self.completed_at = now
        self.updated_at = now

        next_date = self.next_occurrence()
        if next_date is None:
            return None

        return Reminder.objects.create(
            user_id=self.user_id,
            opportunity_id=self.opportunity_id,
            contact_id=self.contact_id,
            title=self.title,
            description=self.description,
            reminder_date=next_date,
            type=self.type,
            priority=self.priority,
            is_recurring=True,
            recurrence_pattern=self.recurrence_pattern,
            recurrence_interval=self.recurrence_interval,
            recurrence_end_date=self.recurrence_end_date,
        )

    def snooze(self, minutes=60):
        # Overdue reminders restart from now, the others keep their own date as base
        now = timezone.now()
        base = now if self.reminder_date < now else self.reminder_date
        self.reminder_date = base + timedelta(minutes=minutes)
        self.snoozed_until = self.reminder_date
        self.status = self.STATUS_PENDING
        self.notified_at = None
        self.save(update_fields=['reminder_date', 'snoozed_until', 'status', 'notified_at', 'updated_at'])


VARIABLE_PATTERN = re.compile(r'\{\{\s*([\w.]+)\s*\}\}')


class EmailTemplateQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def accessible_to(self, user):
        return self.filter(Q(user=user) | Q(is_shared=True))


class EmailTemplate(models.Model):
    """Reusable email with {{variable}} placeholders."""

    CATEGORY_CHOICES = [
        ('general', _('General')),
        ('welcome', _('Welcome')),
        ('follow_up', _('Follow-up')),
        ('proposal', _('Proposal')),
        ('negotiation', _('Negotiation')),
        ('closing', _('Closing')),
        ('thank_you', _('Thank you')),
        ('meeting', _('Meeting')),
        ('information', _('Information')),
    ]

    AVAILABLE_VARIABLES = {
        'contact_name': _('Contact name'),
        'contact_first_name': _('Contact first name'),
        'contact_email': _('Contact email'),
        'company_name': _('Company name'),
        'opportunity_name': _('Opportunity name'),
        'opportunity_amount': _('Opportunity amount'),
        'user_name': _('Your name'),
        'user_email': _('Your email'),
        'user_phone': _('Your phone'),
        'date': _('Current date'),
        'time': _('Current time'),
    }

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='email_templates')
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='general', db_index=True)
    subject = models.CharField(max_length=255)
    body = models.TextField()
    variables = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    is_shared = models.BooleanField(default=False)
    usage_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EmailTemplateQuerySet.as_manager()

    class Meta:
        verbose_name = 'Email template'
        verbose_name_plural = 'Email templates'
        ordering = ['category', 'name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.variables = extract_variables(f"{self.subject} {self.body}")
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and ({'subject', 'body'} & set(update_fields)):
            kwargs['update_fields'] = set(update_fields) | {'variables'}
        super().save(*args, **kwargs)

    def render(self, data=None, user=None):
        """
        Replace {{name}} placeholders in subject and body

        date, time, user_name and user_email are always available,
        unknown placeholders are left untouched.
        """
        now = timezone.localtime()
        values = {
            'date': now.strftime('%d/%m/%Y'),
            'time': now.strftime('%H:%M'),
            'user_name': user.get_full_name() if user else '',
            'user_email': user.email if user else '',
            'user_phone': (user.phone or '') if user else '',
        }
        values.update({key: '' if value is None else str(value) for key, value in (data or {}).items()})

        def replace(match):
            return values.get(match.group(1), match.group(0))

        return {
            'subject': VARIABLE_PATTERN.sub(replace, self.subject),
            'body': VARIABLE_PATTERN.sub(replace, self.body),
        }

    def increment_usage(self):
        EmailTemplate.objects.filter(pk=self.pk).update(usage_count=F('usage_count') + 1)


def extract_variables(text):
    seen = []
    for name in VARIABLE_PATTERN.findall(text or ''):
        if name not in seen:
            seen.append(name)
    return seen
