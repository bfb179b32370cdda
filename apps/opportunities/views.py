import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.utils.translation import gettext as _
from django.views.decorators.http import require_POST

from apps.accounts.decorators import permission_required, deny, is_ajax
from apps.accounts.models import User
from apps.core.services import activity_logger
from apps.core.utils import add_months
from . import policies, services
from .exports import export_csv, export_xlsx, import_opportunities, import_template
from .forms import (
    OpportunityForm, OpportunityActivityForm, QuickNoteForm, OpportunityStageForm,
    OpportunityFilterForm, OpportunityImportForm, ForecastForm,
)
from .models import Opportunity, OpportunityActivity, OpportunityStage


logger = logging.getLogger(__name__)


def _filtered_opportunities(request):
    """Visible opportunities narrowed by the list filters (search, stage, user, dates)."""
    opportunities = policies.visible_opportunities(
        request.user,
        Opportunity.objects.select_related('contact', 'company', 'owner'),
    )

    filter_form = OpportunityFilterForm(request.GET)
    if filter_form.is_valid():
        search_query = filter_form.cleaned_data.get('search', '').strip()
        if search_query:
            opportunities = opportunities.filter(
                Q(name__icontains=search_query) |
                Q(description__icontains=search_query) |
                Q(contact__name__icontains=search_query) |
                Q(company__name__icontains=search_query)
            )

        if filter_form.cleaned_data.get('stage'):
            opportunities = opportunities.filter(stage=filter_form.cleaned_data['stage'])

        if filter_form.cleaned_data.get('user'):
            opportunities = opportunities.filter(owner=filter_form.cleaned_data['user'])

        if filter_form.cleaned_data.get('date_from'):
            opportunities = opportunities.filter(created_at__date__gte=filter_form.cleaned_data['date_from'])

        if filter_form.cleaned_data.get('date_to'):
            opportunities = opportunities.filter(created_at__date__lte=filter_form.cleaned_data['date_to'])

    return opportunities, filter_form


def _get_opportunity_for(request, pk, check):
    opportunity = get_object_or_404(Opportunity.objects.select_related('contact', 'company', 'owner'), pk=pk)
    return opportunity, check(request.user, opportunity)


@login_required
def opportunity_list_view(request):
    if not policies.can_view_any_opportunity(request.user):
        return deny(request, _('You do not have permission to view opportunities.'))

    opportunities, filter_form = _filtered_opportunities(request)

    paginator = Paginator(opportunities.order_by('-created_at'), getattr(settings, 'PAGINATION_SIZE', 25))
    page_obj = paginator.get_page(request.GET.get('page', 1))

    context = {
        'opportunities': page_obj,
        'page_obj': page_obj,
        'is_paginated': page_obj.has_other_pages(),
        'filter_form': filter_form,
        'metrics': services.pipeline_metrics(policies.visible_opportunities(request.user, Opportunity.objects.all())),
        'stages': OpportunityStage.options(),
        'can_create': policies.can_create_opportunity(request.user),
    }

    return render(request, 'opportunities/opportunity_list.html', context)


@login_required
def opportunity_detail_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_view_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to view this opportunity.'))

    context = {
        'opportunity': opportunity,
        'activities': opportunity.activities.select_related('user'),
        'activity_form': OpportunityActivityForm(),
        'note_form': QuickNoteForm(),
        'stages': OpportunityStage.options(),
        'can_edit': policies.can_update_opportunity(request.user, opportunity),
        'can_delete': policies.can_delete_opportunity(request.user, opportunity),
    }

    return render(request, 'opportunities/opportunity_detail.html', context)


@login_required
def opportunity_create_view(request):
    if not policies.can_create_opportunity(request.user):
        return deny(request, _('You do not have permission to create opportunities.'))

    if request.method == 'POST':
        form = OpportunityForm(request.POST, user=request.user)

        if form.is_valid():
            with transaction.atomic():
                opportunity = form.save(commit=False)
                opportunity.owner = request.user
                opportunity.save()
                opportunity.activities.create(
                    user=request.user,
                    type=OpportunityActivity.TYPE_CREATED,
                    title=_('Opportunity created'),
                    description=_('Opportunity created with amount %(amount)s %(currency)s') % {
                        'amount': opportunity.amount, 'currency': opportunity.currency,
                    },
                )

            logger.info(f"Opportunity {opportunity.pk} created by {request.user.email}")
            messages.success(request, _('Opportunity "%(name)s" created successfully.') % {'name': opportunity.name})
            return redirect('opportunities:opportunity_detail', pk=opportunity.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = OpportunityForm(user=request.user, initial={
            'contact': request.GET.get('contact'),
            'company': request.GET.get('company'),
            'stage': OpportunityStage.NOUVEAU,
            'currency': 'EUR',
            'expected_close_date': add_months(timezone.localdate(), 1),
        })

    return render(request, 'opportunities/opportunity_form.html', {'form': form, 'is_edit': False})


@login_required
def opportunity_edit_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_update_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to edit this opportunity.'))

    if request.method == 'POST':
        form = OpportunityForm(request.POST, instance=opportunity, user=request.user)

        if form.is_valid():
            opportunity = form.save()
            logger.info(f"Opportunity {opportunity.pk} updated by {request.user.email}")
            messages.success(request, _('Opportunity updated successfully.'))
            return redirect('opportunities:opportunity_detail', pk=opportunity.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = OpportunityForm(instance=opportunity, user=request.user)

    return render(request, 'opportunities/opportunity_form.html', {'form': form, 'opportunity': opportunity, 'is_edit': True})


@login_required
@require_POST
def opportunity_delete_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_delete_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to delete this opportunity.'))

    name = opportunity.name
    opportunity.delete()
    logger.info(f"Opportunity {pk} deleted by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True})

    messages.success(request, _('Opportunity "%(name)s" deleted.') % {'name': name})
    return redirect('opportunities:opportunity_list')


@login_required
@require_POST
def opportunity_add_activity_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_update_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to edit this opportunity.'))

    form = OpportunityActivityForm(request.POST)
    if not form.is_valid():
        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
        return redirect('opportunities:opportunity_detail', pk=opportunity.pk)

    activity = form.save(commit=False)
    activity.opportunity = opportunity
    activity.user = request.user
    activity.save()
    logger.info(f"Activity {activity.type} added to opportunity {opportunity.pk} by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True, 'activity': {'id': activity.pk, 'type': activity.type, 'title': activity.title}})

    messages.success(request, _('Activity added successfully.'))
    return redirect('opportunities:opportunity_detail', pk=opportunity.pk)


@login_required
@require_POST
def opportunity_complete_activity_view(request, activity_id):
    activity = get_object_or_404(OpportunityActivity.objects.select_related('opportunity'), pk=activity_id)

    if not policies.can_update_opportunity(request.user, activity.opportunity):
        return deny(request, _('You do not have permission to edit this opportunity.'))

    activity.complete()

    if is_ajax(request):
        return JsonResponse({'success': True, 'completed_at': activity.completed_at.isoformat()})

    messages.success(request, _('Activity marked as completed.'))
    return redirect('opportunities:opportunity_detail', pk=activity.opportunity_id)


@login_required
@require_POST
def opportunity_duplicate_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_view_opportunity)
    if not allowed or not policies.can_create_opportunity(request.user):
        return deny(request, _('You do not have permission to duplicate this opportunity.'))

    copy = Opportunity.objects.create(
        name=f"{opportunity.name} (Copy)",
        description=opportunity.description,
        contact=opportunity.contact,
        company=opportunity.company,
        owner=request.user,
        amount=opportunity.amount,
        currency=opportunity.currency,
        probability=OpportunityStage.probability_for(OpportunityStage.NOUVEAU),
        stage=OpportunityStage.NOUVEAU,
        expected_close_date=add_months(timezone.localdate(), 1),
        lead_source=opportunity.lead_source,
        next_step=opportunity.next_step,
        products=opportunity.products,
        competitors=opportunity.competitors,
        custom_fields=opportunity.custom_fields,
    )
    copy.activities.create(
        user=request.user,
        type=OpportunityActivity.TYPE_CREATED,
        title=_('Opportunity duplicated'),
        description=_('Copied from "%(name)s"') % {'name': opportunity.name},
    )
    logger.info(f"Opportunity {opportunity.pk} duplicated as {copy.pk} by {request.user.email}")

    messages.success(request, _('Opportunity duplicated successfully.'))
    return redirect('opportunities:opportunity_edit', pk=copy.pk)


@login_required
def opportunity_metrics_view(request):
    if not policies.can_view_any_opportunity(request.user):
        return deny(request, _('You do not have permission to view opportunities.'))

    queryset = policies.visible_opportunities(request.user, Opportunity.objects.all())
    return JsonResponse(services.pipeline_metrics(queryset))


# KANBAN

def _kanban_queryset(request):
    """Admins see the whole pipeline (optionally one user's), others their own deals."""
    queryset = Opportunity.objects.all()
    if not request.user.is_admin():
        return queryset.filter(owner=request.user), None

    user_id = request.GET.get('user_id')
    if user_id and user_id.isdigit():
        return queryset.filter(owner_id=user_id), int(user_id)
    return queryset, None


@login_required
def opportunity_kanban_view(request):
    if not policies.can_view_any_opportunity(request.user):
        return deny(request, _('You do not have permission to view opportunities.'))

    queryset, selected_user = _kanban_queryset(request)
    columns = services.kanban_board(queryset)

    context = {
        'columns': columns,
        'total_count': sum(column['count'] for column in columns),
        'users': User.objects.filter(is_active=True).order_by('first_name') if request.user.is_admin() else None,
        'selected_user': selected_user,
    }

    return render(request, 'opportunities/opportunity_kanban.html', context)


@login_required
def opportunity_kanban_stats_view(request):
    if not policies.can_view_any_opportunity(request.user):
        return deny(request, _('You do not have permission to view opportunities.'))

    queryset, _selected = _kanban_queryset(request)
    return JsonResponse({'stats': services.kanban_stats(queryset)})


@login_required
@require_POST
def opportunity_move_view(request, pk):
    """Kanban drag & drop: new stage and its default probability."""
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_change_stage)
    if not allowed:
        return deny(request, _('You do not have permission to move this opportunity.'))

    form = OpportunityStageForm(request.POST)
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    old_stage = opportunity.stage
    opportunity.stage = form.cleaned_data['stage']
    opportunity.probability = OpportunityStage.probability_for(opportunity.stage)
    opportunity.save()
    logger.info(f"Opportunity {opportunity.pk} moved from {old_stage} to {opportunity.stage} by {request.user.email}")

    return JsonResponse({'success': True, 'opportunity': services.opportunity_card(opportunity)})


# TIMELINE

@login_required
def opportunity_timeline_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_view_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to view this opportunity.'))

    return JsonResponse(services.opportunity_timeline(opportunity))


@login_required
@require_POST
def opportunity_quick_note_view(request, pk):
    opportunity, allowed = _get_opportunity_for(request, pk, policies.can_view_opportunity)
    if not allowed:
        return deny(request, _('You do not have permission to view this opportunity.'))

    form = QuickNoteForm(request.POST)
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    activity_logger.log(
        'Note added',
        subject=opportunity,
        causer=request.user,
        properties={'note_content': form.cleaned_data['note']},
        log_name=services.QUICK_NOTE_LOG_NAME,
    )

    return JsonResponse({'success': True, 'message': _('Note saved to the history.')})


# EXPORT / IMPORT

@login_required
@permission_required('export opportunities')
def opportunity_export_view(request):
    opportunities, _filter_form = _filtered_opportunities(request)
    opportunities = opportunities.order_by('-created_at')

    export_format = request.GET.get('format', 'csv')
    if export_format in ('xlsx', 'excel'):
        return export_xlsx(opportunities)
    if export_format == 'csv':
        return export_csv(opportunities)

    messages.error(request, _('Invalid export format'))
    return redirect('opportunities:opportunity_list')


@login_required
@permission_required('import opportunities')
def opportunity_import_view(request):
    if request.method == 'POST':
        form = OpportunityImportForm(request.POST, request.FILES)

        if form.is_valid():
            results = import_opportunities(request.user, form.rows)

            if is_ajax(request):
                return JsonResponse(results)

            if results['success']:
                messages.success(request, _('%(count)s opportunities imported, %(skipped)s rows skipped.') % {
                    'count': results['success'], 'skipped': results['skipped'],
                })
            else:
                messages.error(request, _('No opportunity imported. Check the file format.'))

            request.session['opportunity_import_errors'] = results['errors'][:50]
            return redirect('opportunities:opportunity_import')

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
    else:
        form = OpportunityImportForm()

    context = {
        'form': form,
        'errors': request.session.pop('opportunity_import_errors', []),
    }
    return render(request, 'opportunities/opportunity_import.html', context)


@login_required
@permission_required('import opportunities')
def opportunity_import_template_view(request):
    return import_template()


# FORECAST

@login_required
def forecast_view(request):
    if not policies.can_view_any_opportunity(request.user):
        return deny(request, _('You do not have permission to view opportunities.'))

    form = ForecastForm(request.GET)
    form.is_valid()
    period = form.cleaned_data.get('period', 'quarter')
    scenario = form.cleaned_data.get('scenario', 'realistic')

    queryset = policies.visible_opportunities(request.user, Opportunity.objects.all())
    data = {
        'forecasts': services.revenue_forecast(queryset, period=period, scenario=scenario),
        'historical_data': services.historical_won(queryset),
        'pipeline_analysis': services.pipeline_analysis(queryset),
        'conversion_rates': services.stage_conversion_rates(queryset),
        'filters': {'period': period, 'scenario': scenario},
    }

    if is_ajax(request):
        return JsonResponse(data)

    return render(request, 'opportunities/forecast.html', {**data, 'form': form})
