"""
Pipeline computations

metrics / forecast / kanban board / timeline for a queryset of
opportunities already restricted to what the user may see.
Amounts are returned as floats so the results can go straight into a
JsonResponse or a template.
"""

import calendar
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db.models import Avg, Count, Sum
from django.utils import timezone
from django.utils.dateformat import format as date_format
from django.utils.translation import gettext as _

from apps.core.models import ActivityLog
from apps.core.utils import add_months, month_start
from .models import Opportunity, OpportunityStage, FINAL_STAGES


SCENARIO_FACTORS = {
    'pessimistic': Decimal('0.7'),
    'realistic': Decimal('1.0'),
    'optimistic': Decimal('1.2'),
}

QUICK_NOTE_LOG_NAME = 'note'


def _money(value):
    return round(float(value or 0), 2)


def _month_end(day):
    return date(day.year, day.month, calendar.monthrange(day.year, day.month)[1])


def weighted_total(queryset):
    """sum(amount x probability / 100), computed in Python to keep decimal precision on every backend."""
    total = Decimal('0')
    for amount, probability in queryset.values_list('amount', 'probability'):
        total += Decimal(str(amount or 0)) * (probability or 0) / 100
    return total


# METRICS

def conversion_rate(queryset):
    closed = queryset.filter(stage__in=FINAL_STAGES).count()
    if closed == 0:
        return 0
    won = queryset.won().count()
    return round(won / closed * 100, 1)


def opportunities_by_stage(queryset):
    rows = (
        queryset.open()
        .order_by()
        .values('stage')
        .annotate(count=Count('id'), total=Sum('amount'))
    )
    labels = dict(OpportunityStage.choices)
    return [
        {
            'stage': row['stage'],
            'stage_label': str(labels.get(row['stage'], row['stage'])),
            'count': row['count'],
            'total': _money(row['total']),
        }
        for row in rows
    ]


def monthly_forecast(queryset, months=3, today=None):
    """Weighted value of open opportunities by expected close month, from the current month."""
    today = today or timezone.localdate()
    forecast = []
    for offset in range(months):
        start = month_start(add_months(today, offset))
        month_qs = queryset.open().filter(expected_close_date__range=(start, _month_end(start)))
        forecast.append({
            'month': date_format(start, 'F Y'),
            'expected': _money(weighted_total(month_qs)),
        })
    return forecast


def pipeline_metrics(queryset, today=None):
    today = today or timezone.localdate()
    open_qs = queryset.open()

    return {
        'pipeline_value': _money(open_qs.aggregate(total=Sum('amount'))['total']),
        'weighted_pipeline': _money(weighted_total(open_qs)),
        'opportunities_count': open_qs.count(),
        'won_this_month': _money(
            queryset.won().filter(actual_close_date__gte=month_start(today)).aggregate(total=Sum('amount'))['total']
        ),
        'conversion_rate': conversion_rate(queryset),
        'average_deal_size': _money(queryset.won().aggregate(average=Avg('amount'))['average']),
        'closing_this_month': queryset.closing_this_month().open().count(),
        'overdue_opportunities': queryset.overdue().count(),
        'by_stage': opportunities_by_stage(queryset),
        'forecast': monthly_forecast(queryset, today=today),
    }


# FORECAST

def forecast_end_date(period, today):
    if period == 'semester':
        return add_months(today, 6)
    if period == 'year':
        return date(today.year, 12, 31)
    quarter_last_month = ((today.month - 1) // 3 + 1) * 3
    return _month_end(date(today.year, quarter_last_month, 1))


def revenue_forecast(queryset, period='quarter', scenario='realistic', today=None):
    """
    Monthly forecast of open opportunities up to the end of the period

    Buckets by probability: committed (> 75), best_case (50..75),
    pipeline (< 50). The scenario factor scales the weighted amounts.
    """
    today = today or timezone.localdate()
    factor = SCENARIO_FACTORS.get(scenario, SCENARIO_FACTORS['realistic'])
    end = forecast_end_date(period, today)

    monthly = []
    current = month_start(today)
    while current <= end:
        opportunities = queryset.open().filter(expected_close_date__range=(current, _month_end(current)))

        committed = best_case = pipeline = weighted = Decimal('0')
        count = 0
        for opportunity in opportunities:
            amount = Decimal(str(opportunity.amount))
            if opportunity.probability > 75:
                committed += amount
            elif opportunity.probability >= 50:
                best_case += amount
            else:
                pipeline += amount
            weighted += amount * opportunity.probability / 100 * factor
            count += 1

        monthly.append({
            'month': current.strftime('%Y-%m'),
            'month_label': date_format(current, 'F Y'),
            'committed': _money(committed),
            'best_case': _money(best_case),
            'pipeline': _money(pipeline),
            'weighted': _money(weighted),
            'total': _money(committed + best_case + pipeline),
            'opportunities_count': count,
        })
        current = add_months(current, 1)

    totals = {
        key: round(sum(month[key] for month in monthly), 2)
        for key in ('committed', 'best_case', 'pipeline', 'weighted', 'total')
    }
    totals['opportunities_count'] = sum(month['opportunities_count'] for month in monthly)

    return {
        'monthly': monthly,
        'totals': totals,
        'period': period,
        'scenario': scenario,
        'factor': float(factor),
    }


def historical_won(queryset, months=6, today=None):
    """Won deals per month of actual close date over the last `months` months."""
    today = today or timezone.localdate()
    since = month_start(add_months(today, -months))

    buckets = OrderedDict()
    won = queryset.won().filter(actual_close_date__gte=since).order_by('actual_close_date')
    for opportunity in won.only('amount', 'actual_close_date'):
        key = opportunity.actual_close_date.strftime('%Y-%m')
        bucket = buckets.setdefault(key, {
            'month': key,
            'month_label': date_format(month_start(opportunity.actual_close_date), 'F Y'),
            'count': 0,
            'total': Decimal('0'),
        })
        bucket['count'] += 1
        bucket['total'] += Decimal(str(opportunity.amount))

    return [
        {**bucket, 'total': _money(bucket['total']), 'average': _money(bucket['total'] / bucket['count'])}
        for bucket in buckets.values()
    ]


def pipeline_analysis(queryset, now=None):
    now = now or timezone.now()
    analysis = []
    for stage, label in OpportunityStage.choices:
        if stage in FINAL_STAGES:
            continue
        stage_qs = queryset.filter(stage=stage)
        stats = stage_qs.aggregate(count=Count('id'), total=Sum('amount'), average=Avg('amount'))
        probability = OpportunityStage.probability_for(stage)

        days = [(now - updated_at).days for updated_at in stage_qs.values_list('updated_at', flat=True)]

        analysis.append({
            'stage': stage,
            'label': str(label),
            'probability': probability,
            'count': stats['count'],
            'total_value': _money(stats['total']),
            'weighted_value': _money(Decimal(str(stats['total'] or 0)) * probability / 100),
            'average_value': _money(stats['average']),
            'average_days_in_stage': round(sum(days) / len(days)) if days else 0,
        })
    return analysis


def stage_conversion_rates(queryset, today=None):
    """Share of the last 3 months' opportunities that made it past each open stage."""
    today = today or timezone.localdate()
    recent = queryset.filter(created_at__date__gte=month_start(add_months(today, -3)))

    ladder = [
        OpportunityStage.NOUVEAU,
        OpportunityStage.QUALIFICATION,
        OpportunityStage.PROPOSITION_ENVOYEE,
        OpportunityStage.NEGOCIATION,
        OpportunityStage.CONVERTI,
    ]
    labels = dict(OpportunityStage.choices)

    rates = []
    for index, stage in enumerate(ladder[:-1]):
        next_stage = ladder[index + 1]
        current = recent.filter(stage=stage).count()
        progressed = recent.filter(stage__in=ladder[index + 1:]).count()
        total = current + progressed
        rates.append({
            'from_stage': stage,
            'to_stage': next_stage,
            'from_label': str(labels[stage]),
            'to_label': str(labels[next_stage]),
            'rate': round(progressed / total * 100, 1) if total else 0,
            'progressed': progressed,
            'total': total,
        })

    total_recent = recent.count()
    won_recent = recent.won().count()
    return {
        'stage_rates': rates,
        'overall_rate': round(won_recent / total_recent * 100, 1) if total_recent else 0,
        'total_opportunities': total_recent,
        'won_opportunities': won_recent,
    }


# KANBAN

def opportunity_card(opportunity):
    return {
        'id': opportunity.pk,
        'name': opportunity.name,
        'amount': _money(opportunity.amount),
        'currency': opportunity.currency,
        'probability': opportunity.probability,
        'weighted_amount': _money(opportunity.weighted_amount),
        'stage': opportunity.stage,
        'stage_label': str(opportunity.get_stage_display()),
        'stage_color': opportunity.stage_color,
        'expected_close_date': opportunity.expected_close_date.isoformat() if opportunity.expected_close_date else None,
        'days_until_close': opportunity.days_until_close,
        'is_overdue': opportunity.is_overdue,
        'contact': opportunity.contact.name if opportunity.contact_id else None,
        'company': opportunity.company.name if opportunity.company_id else None,
        'owner': opportunity.owner.get_full_name() if opportunity.owner_id else None,
    }


def kanban_board(queryset):
    """One column per stage, open stages first, with count / total / weighted total."""
    queryset = queryset.select_related('contact', 'company', 'owner')
    columns = []
    for stage, label in OpportunityStage.choices:
        opportunities = list(queryset.filter(stage=stage).order_by('expected_close_date', '-updated_at'))
        columns.append({
            'stage': stage,
            'label': str(label),
            'color': OpportunityStage.color_for(stage),
            'probability': OpportunityStage.probability_for(stage),
            'is_final': OpportunityStage.is_final(stage),
            'opportunities': opportunities,
            'count': len(opportunities),
            'total': _money(sum(Decimal(str(o.amount)) for o in opportunities)),
            'weighted_total': _money(sum(o.weighted_amount for o in opportunities)),
        })
    return columns


def kanban_stats(queryset):
    return {
        column['stage']: {
            'count': column['count'],
            'total': column['total'],
            'weighted_total': column['weighted_total'],
        }
        for column in kanban_board(queryset)
    }


# TIMELINE

def timeline_group(moment, now=None):
    """Label of the timeline section a datetime falls into."""
    now = timezone.localtime(now or timezone.now())
    day = timezone.localtime(moment).date()
    today = now.date()
    week_start = today - timedelta(days=today.weekday())

    if day == today:
        return _('Today')
    if day == today - timedelta(days=1):
        return _('Yesterday')
    if week_start <= day <= today:
        return _('This week')
    if week_start - timedelta(days=7) <= day < week_start:
        return _('Last week')
    if (day.year, day.month) == (today.year, today.month):
        return _('This month')
    return date_format(day, 'F Y')


def _causer_name(user):
    return user.get_full_name() if user is not None else _('System')


def _log_description(log):
    if log.log_name == QUICK_NOTE_LOG_NAME:
        return log.properties.get('note_content', '')
    changes = log.properties.get('changes') or {}
    if changes:
        return ', '.join(
            f"{field}: {values.get('old')} -> {values.get('new')}" for field, values in changes.items()
        )
    return log.description


def opportunity_timeline(opportunity, now=None):
    """
    OpportunityActivity rows and ActivityLog rows of an opportunity, newest
    first, grouped by Today / Yesterday / This week / Last week / This month / Month YYYY
    """
    events = []

    activities = opportunity.activities.select_related('user')
    for activity in activities:
        events.append({
            'id': f"activity_{activity.pk}",
            'type': activity.type,
            'action': activity.title,
            'description': activity.description,
            'old_value': activity.old_value,
            'new_value': activity.new_value,
            'user': _causer_name(activity.user),
            'user_id': activity.user_id,
            'created_at': activity.created_at,
            'completed_at': activity.completed_at,
        })

    logs = list(ActivityLog.objects.filter(
        subject_type=ContentType.objects.get_for_model(Opportunity),
        subject_id=opportunity.pk,
    ).select_related('causer'))
    for log in logs:
        events.append({
            'id': f"log_{log.pk}",
            'type': 'note' if log.log_name == QUICK_NOTE_LOG_NAME else 'system',
            'action': log.description,
            'description': _log_description(log),
            'user': _causer_name(log.causer),
            'user_id': log.causer_id,
            'created_at': log.created_at,
            'completed_at': None,
        })

    events.sort(key=lambda event: event['created_at'], reverse=True)

    grouped = OrderedDict()
    for event in events:
        grouped.setdefault(str(timeline_group(event['created_at'], now)), []).append(event)

    notes = sum(1 for log in logs if log.log_name == QUICK_NOTE_LOG_NAME)
    return {
        'timeline': grouped,
        'total_events': len(events),
        'stats': {
            'notes': notes,
            'activities': len(activities),
            'system_logs': len(logs) - notes,
        },
    }
