"""
Dashboard statistics

Every function takes the requesting user. Users with the 'view all stats'
permission (admins, managers) see the whole CRM, the others only the
records they own.
"""

from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.contacts.models import Contact, Company, CompanyStatus
from apps.documents.models import Document
from apps.opportunities.models import Opportunity, OpportunityStage
from apps.reminders.models import Reminder
from .models import ActivityLog
from .utils import add_months, month_start


def sees_everything(user):
    return user.has_crm_perm('view all stats')


def _contacts(user):
    qs = Contact.objects.all()
    return qs if sees_everything(user) else qs.filter(user=user)


def _companies(user):
    qs = Company.objects.all()
    return qs if sees_everything(user) else qs.filter(owner=user)


def _documents(user):
    qs = Document.objects.all()
    return qs if sees_everything(user) else qs.filter(owner=user)


def _opportunities(user):
    qs = Opportunity.objects.all()
    return qs if sees_everything(user) else qs.filter(owner=user)


def get_stats(user):
    today = timezone.localdate()
    this_month = {'created_at__year': today.year, 'created_at__month': today.month}

    opportunities = _opportunities(user)
    open_opportunities = opportunities.open()
    pipeline_value = Decimal('0')
    weighted_pipeline = Decimal('0')
    for amount, probability in open_opportunities.values_list('amount', 'probability'):
        pipeline_value += amount
        weighted_pipeline += amount * probability / 100

    won_this_month = opportunities.won().filter(
        actual_close_date__year=today.year, actual_close_date__month=today.month,
    ).aggregate(total=Sum('amount'))['total']

    contacts = _contacts(user)
    companies = _companies(user)
    documents = _documents(user)

    return {
        'total_contacts': contacts.count(),
        'total_companies': companies.count(),
        'total_documents': documents.count(),
        'total_opportunities': opportunities.count(),
        'open_opportunities': open_opportunities.count(),
        'pipeline_value': pipeline_value,
        'weighted_pipeline': weighted_pipeline.quantize(Decimal('0.01')),
        'won_this_month': won_this_month or Decimal('0'),
        'contacts_this_month': contacts.filter(**this_month).count(),
        'companies_this_month': companies.filter(**this_month).count(),
        'documents_this_month': documents.filter(**this_month).count(),
        'opportunities_this_month': opportunities.filter(**this_month).count(),
    }


def contacts_by_status(user):
    contacts = _contacts(user)
    total = contacts.count()
    with_company = contacts.filter(company__isnull=False).count()
    recent = contacts.filter(created_at__gte=timezone.now() - timedelta(days=30)).count()

    return [
        {'name': 'Total', 'value': total, 'status': 'total'},
        {'name': 'Recent (30 days)', 'value': recent, 'status': 'recent'},
        {'name': 'With company', 'value': with_company, 'status': 'with_company'},
        {'name': 'Without company', 'value': total - with_company, 'status': 'without_company'},
    ]


def companies_by_status(user):
    labels = dict(CompanyStatus.choices)
    rows = _companies(user).values('status').annotate(count=Count('id')).order_by('status')
    return [
        {'name': str(labels.get(row['status'], row['status'])), 'value': row['count'], 'status': row['status']}
        for row in rows
    ]


def opportunities_by_stage(user):
    totals = {
        row['stage']: row
        for row in _opportunities(user).values('stage').annotate(count=Count('id'), amount=Sum('amount'))
    }
    return [
        {
            'name': str(label),
            'stage': stage,
            'count': totals.get(stage, {}).get('count', 0),
            'amount': totals.get(stage, {}).get('amount') or Decimal('0'),
            'color': OpportunityStage.color_for(stage),
        }
        for stage, label in OpportunityStage.choices
    ]


def _monthly_counts(queryset, months=12):
    """[{'month': 'Mar 2025', 'count': n}] for the last `months` months, oldest first."""
    first = add_months(month_start(timezone.localdate()), -(months - 1))
    counts = {
        row['month'].date(): row['count']
        for row in queryset.filter(created_at__date__gte=first)
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(count=Count('id'))
    }

    timeline = []
    for offset in range(months):
        month = add_months(first, offset)
        timeline.append({'month': month.strftime('%b %Y'), 'count': counts.get(month, 0)})
    return timeline


def contacts_timeline(user):
    return [{'month': row['month'], 'contacts': row['count']} for row in _monthly_counts(_contacts(user))]


def documents_timeline(user):
    return [{'month': row['month'], 'documents': row['count']} for row in _monthly_counts(_documents(user))]


ACTIVITY_STYLES = {
    'opportunity': ('target', 'blue'),
    'contact': ('user', 'purple'),
    'company': ('building', 'indigo'),
    'document': ('file', 'yellow'),
}


def recent_activities(user, limit=15):
    """
    Latest activity log entries merged with pending reminders due within 7 days

    Sorted newest first, at most `limit` items.
    """
    logs = ActivityLog.objects.select_related('causer', 'subject_type')
    if not sees_everything(user):
        logs = logs.filter(causer=user)

    activities = []
    for log in logs[:limit]:
        model_name = log.subject_type.model if log.subject_type else log.properties.get('type', '')
        activity_type = model_name if model_name in ACTIVITY_STYLES else 'activity'
        icon, color = ACTIVITY_STYLES.get(activity_type, ('activity', 'gray'))
        if activity_type == 'opportunity' and log.description.endswith('created'):
            icon, color = 'plus', 'green'
        elif activity_type == 'opportunity' and log.description.endswith('updated'):
            icon, color = 'edit', 'orange'

        activities.append({
            'type': activity_type,
            'title': log.description,
            'description': f"By {log.causer.get_full_name()}" if log.causer else 'System activity',
            'date': log.created_at,
            'id': log.pk,
            'subject_id': log.subject_id,
            'subject_type': activity_type,
            'icon': icon,
            'color': color,
        })

    reminders = (Reminder.objects.for_user(user).pending()
                 .filter(reminder_date__lte=timezone.now() + timedelta(days=7))
                 .order_by('reminder_date')[:5])
    for reminder in reminders:
        activities.append({
            'type': 'reminder',
            'title': f"Reminder: {reminder.title}",
            'description': 'Overdue' if reminder.is_overdue else 'Upcoming',
            'date': reminder.reminder_date,
            'id': reminder.pk,
            'subject_id': reminder.pk,
            'subject_type': 'reminder',
            'icon': 'bell',
            'color': 'red' if reminder.is_overdue else 'yellow',
        })

    activities.sort(key=lambda item: item['date'], reverse=True)
    return activities[:limit]
