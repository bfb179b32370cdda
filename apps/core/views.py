import json
import logging
from smtplib import SMTPException

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse, Http404
from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse
from django.utils.translation import gettext as _
from django.views.decorators.http import require_GET, require_POST

from apps.accounts.decorators import permission_required, is_ajax
from apps.contacts.models import Contact, Company
from apps.documents.models import Document
from apps.opportunities.models import Opportunity
from apps.reminders.models import Reminder
from . import dashboard
from .forms import SettingUpdateForm, TestEmailForm
from .models import CrmSetting
from .services import settings_service
from .utils import clamp_int, clean_setting_value


logger = logging.getLogger(__name__)


# DASHBOARD

@login_required
def dashboard_view(request):
    """
    Main dashboard

    Admins and managers see company-wide figures, sales users their own.
    Charts are loaded from the JSON endpoints below.
    """
    context = {
        'stats': dashboard.get_stats(request.user),
        'stats_label': _('Company') if dashboard.sees_everything(request.user) else _('My'),
        'contacts_by_status': dashboard.contacts_by_status(request.user),
        'opportunities_by_stage': dashboard.opportunities_by_stage(request.user),
        'activities': dashboard.recent_activities(request.user, limit=10),
    }
    return render(request, 'core/dashboard.html', context)


@login_required
@require_GET
def dashboard_stats_api(request):
    return JsonResponse({'data': dashboard.get_stats(request.user)})


@login_required
@require_GET
def contacts_by_status_api(request):
    return JsonResponse({'data': dashboard.contacts_by_status(request.user)})


@login_required
@require_GET
def companies_by_status_api(request):
    return JsonResponse({'data': dashboard.companies_by_status(request.user)})


@login_required
@require_GET
def opportunities_by_stage_api(request):
    return JsonResponse({'data': dashboard.opportunities_by_stage(request.user)})


@login_required
@require_GET
def contacts_timeline_api(request):
    return JsonResponse({'data': dashboard.contacts_timeline(request.user)})


@login_required
@require_GET
def documents_timeline_api(request):
    return JsonResponse({'data': dashboard.documents_timeline(request.user)})


@login_required
@require_GET
def recent_activities_api(request):
    limit = clamp_int(request.GET.get('limit'), 15, 1, 100)
    return JsonResponse({'data': dashboard.recent_activities(request.user, limit=limit)})


OBJECT_TYPES = {
    'contact': Contact,
    'company': Company,
    'opportunity': Opportunity,
    'document': Document,
    'reminder': Reminder,
}


@login_required
def redirect_to_object_view(request, object_type, pk):
    """Open the page of a record referenced by an activity entry."""
    model = OBJECT_TYPES.get(object_type)
    if model is None:
        raise Http404(f"Unknown object type '{object_type}'")

    instance = get_object_or_404(model, pk=pk)

    if object_type == 'document':
        return redirect(f"{reverse('documents:document_list')}?search={instance.name}")
    if object_type == 'reminder':
        return redirect('reminders:reminder_edit', pk=instance.pk)
    return redirect(instance.get_absolute_url())


# CRM SETTINGS

def _json_body(request):
    if request.content_type == 'application/json':
        try:
            return json.loads(request.body or b'{}')
        except ValueError:
            return None
    return request.POST.dict()


@login_required
@permission_required('view crm settings')
def settings_view(request):
    grouped = settings_service.get_all_grouped()

    if is_ajax(request):
        return JsonResponse({'success': True, 'data': grouped})

    context = {
        'settings': grouped,
        'categories': CrmSetting.CATEGORY_CHOICES,
        'test_email_form': TestEmailForm(initial={'email': request.user.email}),
    }
    return render(request, 'core/settings.html', context)


@login_required
@require_GET
def settings_public_api(request):
    return JsonResponse({'success': True, 'data': CrmSetting.get_public_settings()})


@login_required
@permission_required('view crm settings')
@require_GET
def setting_detail_api(request, key):
    setting = CrmSetting.objects.filter(key=key).first()
    if setting is None:
        return JsonResponse({'success': False, 'message': _('Setting not found')}, status=404)

    return JsonResponse({'success': True, 'data': {
        'key': setting.key,
        'value': setting.value,
        'category': setting.category,
        'description': setting.description,
        'is_public': setting.is_public,
    }})


@login_required
@permission_required('manage crm settings')
@require_POST
def settings_update_api(request):
    """Bulk update: {category: {key: value}}."""
    payload = _json_body(request)
    if not payload or not isinstance(payload, dict):
        return JsonResponse({'success': False, 'message': _('No settings provided')}, status=400)

    updated = settings_service.update_many(payload)
    logger.info(f"{updated} CRM setting(s) updated by {request.user.email}")

    return JsonResponse({
        'success': True,
        'message': _('Settings updated successfully'),
        'updated': updated,
        'data': settings_service.get_all_grouped(),
    })


@login_required
@permission_required('manage crm settings')
@require_POST
def setting_update_api(request):
    payload = _json_body(request)
    if payload is None or not isinstance(payload, dict):
        return JsonResponse({'success': False, 'message': _('Invalid request body.')}, status=400)

    form = SettingUpdateForm(payload)
    if not form.is_valid():
        return JsonResponse({'success': False, 'message': _('Validation failed'), 'errors': form.errors},
                            status=422)

    key = form.cleaned_data['key']
    category = form.cleaned_data['category']
    if not CrmSetting.objects.filter(key=key).exists():
        return JsonResponse({'success': False, 'message': _('Setting not found')}, status=404)

    value = clean_setting_value(payload.get('value'))
    settings_service.set(key, value, category)
    logger.info(f"CRM setting '{key}' updated by {request.user.email}")

    return JsonResponse({
        'success': True,
        'message': _('Setting updated successfully'),
        'data': {'key': key, 'value': value, 'category': category},
    })


@login_required
@permission_required('manage crm settings')
@require_POST
def settings_reset_view(request):
    logger.warning(f"CRM settings reset by {request.user.email}, previous values: {settings_service.get_all_grouped()}")
    count = settings_service.reset()

    if is_ajax(request):
        return JsonResponse({
            'success': True,
            'message': _('Settings reset successfully'),
            'count': count,
            'data': settings_service.get_all_grouped(),
        })

    messages.success(request, _('Settings restored to their default values.'))
    return redirect('core:settings')


@login_required
@permission_required('manage crm settings')
@require_POST
def settings_test_email_view(request):
    payload = _json_body(request)
    form = TestEmailForm(payload or {})
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    address = form.cleaned_data['email']
    try:
        settings_service.send_test_email(address)
    except (SMTPException, OSError) as e:
        logger.error(f"Test email to {address} failed: {e}")
        return JsonResponse({'success': False, 'message': _('Could not send the test email: %(error)s') % {'error': e}},
                            status=502)

    return JsonResponse({'success': True, 'message': _('Test email sent to %(email)s.') % {'email': address}})
