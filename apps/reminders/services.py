"""
Reminder listings and email template rendering helpers
"""

from django.utils import timezone

from .models import Reminder


UPCOMING_LIMIT = 10
COUNT_UPCOMING_DAYS = 3


def reminder_payload(reminder):
    return {
        'id': reminder.pk,
        'title': reminder.title,
        'description': reminder.description,
        'reminder_date': timezone.localtime(reminder.reminder_date).isoformat(),
        'type': reminder.type,
        'type_label': str(reminder.get_type_display()),
        'priority': reminder.priority,
        'status': reminder.status,
        'is_recurring': reminder.is_recurring,
        'is_overdue': reminder.is_overdue,
        'is_due_today': reminder.is_due_today,
        'is_due_soon': reminder.is_due_soon,
        'opportunity': {'id': reminder.opportunity_id, 'name': reminder.opportunity.name} if reminder.opportunity_id else None,
        'contact': {'id': reminder.contact_id, 'name': reminder.contact.name} if reminder.contact_id else None,
    }


def grouped_reminders(user):
    """
    The user's reminders split into overdue / today / upcoming / completed

    A reminder lands in exactly one group: overdue wins over today.
    """
    groups = {'overdue': [], 'today': [], 'upcoming': [], 'completed': []}

    reminders = Reminder.objects.for_user(user).select_related('opportunity', 'contact').order_by('reminder_date')
    for reminder in reminders:
        if reminder.status == Reminder.STATUS_COMPLETED:
            groups['completed'].append(reminder)
        elif reminder.is_overdue:
            groups['overdue'].append(reminder)
        elif reminder.is_due_today:
            groups['today'].append(reminder)
        else:
            groups['upcoming'].append(reminder)

    groups['completed'].sort(key=lambda reminder: reminder.completed_at or reminder.reminder_date, reverse=True)

    stats = {
        'overdue': len(groups['overdue']),
        'today': len(groups['today']),
        'upcoming': len(groups['upcoming']),
        'total': len(groups['overdue']) + len(groups['today']) + len(groups['upcoming']),
    }
    return groups, stats


def upcoming_reminders(user, limit=UPCOMING_LIMIT):
    reminders = (
        Reminder.objects.for_user(user).pending()
        .select_related('opportunity', 'contact')
        .order_by('reminder_date')[:limit]
    )
    return [reminder_payload(reminder) for reminder in reminders]


def reminder_counts(user):
    reminders = Reminder.objects.for_user(user)
    return {
        'overdue': reminders.overdue().count(),
        'today': reminders.today().count(),
        'upcoming': reminders.upcoming(COUNT_UPCOMING_DAYS).count(),
    }


def template_data(contact=None, opportunity=None):
    """Variable values taken from a contact and / or an opportunity."""
    data = {}
    if contact is not None:
        data['contact_name'] = contact.name
        data['contact_first_name'] = contact.name.split(' ')[0] if contact.name else ''
        data['contact_email'] = contact.email or ''
        if contact.company_id:
            data['company_name'] = contact.company.name

    if opportunity is not None:
        data['opportunity_name'] = opportunity.name
        data['opportunity_amount'] = f"{opportunity.amount:,.2f} {opportunity.currency}".replace(',', ' ')
        if 'company_name' not in data and opportunity.company_id:
            data['company_name'] = opportunity.company.name
    return data
