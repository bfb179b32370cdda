import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.utils.translation import gettext as _
from django.views.decorators.http import require_POST, require_GET

from apps.accounts.decorators import deny, is_ajax
from . import services
from .forms import ReminderForm, SnoozeForm, EmailTemplateForm, TemplateContextForm, EmailTemplateSendForm
from .models import Reminder, EmailTemplate
from .tasks import send_template_email


logger = logging.getLogger(__name__)


def _own_reminder(request, pk):
    reminder = get_object_or_404(Reminder.objects.select_related('opportunity', 'contact'), pk=pk)
    return reminder, reminder.user_id == request.user.id


def _back(request, default='reminders:reminder_list'):
    next_url = request.POST.get('next') or request.GET.get('next')
    if next_url and next_url.startswith('/') and not next_url.startswith('//'):
        return redirect(next_url)
    return redirect(default)


# REMINDERS

@login_required
def reminder_list_view(request):
    groups, stats = services.grouped_reminders(request.user)

    context = {
        'groups': groups,
        'stats': stats,
        'form': ReminderForm(user=request.user),
        'types': Reminder.TYPE_CHOICES,
        'priorities': Reminder.PRIORITY_CHOICES,
    }
    return render(request, 'reminders/reminder_list.html', context)


@login_required
def reminder_create_view(request):
    if request.method == 'POST':
        form = ReminderForm(request.POST, user=request.user)

        if form.is_valid():
            reminder = form.save(commit=False)
            reminder.user = request.user
            reminder.status = Reminder.STATUS_PENDING
            reminder.save()
            logger.info(f"Reminder {reminder.pk} created by {request.user.email}")

            if is_ajax(request):
                return JsonResponse({'success': True, 'reminder': services.reminder_payload(reminder)}, status=201)
            messages.success(request, _('Reminder created successfully.'))
            return _back(request)

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
    else:
        form = ReminderForm(user=request.user, initial={
            'opportunity': request.GET.get('opportunity'),
            'contact': request.GET.get('contact'),
        })

    return render(request, 'reminders/reminder_form.html', {'form': form, 'is_edit': False})


@login_required
def reminder_edit_view(request, pk):
    reminder, allowed = _own_reminder(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to edit this reminder.'))

    if request.method == 'POST':
        form = ReminderForm(request.POST, instance=reminder, user=request.user)

        if form.is_valid():
            reminder = form.save()
            logger.info(f"Reminder {reminder.pk} updated by {request.user.email}")

            if is_ajax(request):
                return JsonResponse({'success': True, 'reminder': services.reminder_payload(reminder)})
            messages.success(request, _('Reminder updated.'))
            return _back(request)

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
    else:
        form = ReminderForm(instance=reminder, user=request.user)

    return render(request, 'reminders/reminder_form.html', {'form': form, 'reminder': reminder, 'is_edit': True})


@login_required
@require_POST
def reminder_complete_view(request, pk):
    reminder, allowed = _own_reminder(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to edit this reminder.'))

    if reminder.status == Reminder.STATUS_COMPLETED:
        if is_ajax(request):
            return JsonResponse({'success': False, 'message': _('This reminder is already completed.')}, status=409)
        messages.warning(request, _('This reminder is already completed.'))
        return _back(request)

    next_reminder = reminder.mark_completed()
    logger.info(f"Reminder {reminder.pk} completed by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({
            'success': True,
            'reminder': services.reminder_payload(reminder),
            'next': services.reminder_payload(next_reminder) if next_reminder else None,
        })

    messages.success(request, _('Reminder marked as completed.'))
    return _back(request)


@login_required
@require_POST
def reminder_snooze_view(request, pk):
    reminder, allowed = _own_reminder(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to edit this reminder.'))

    form = SnoozeForm(request.POST)
    if not form.is_valid():
        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Invalid snooze duration.'))
        return _back(request)

    reminder.snooze(form.cleaned_data['minutes'])
    logger.info(f"Reminder {reminder.pk} snoozed {form.cleaned_data['minutes']} min by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True, 'reminder': services.reminder_payload(reminder)})

    messages.success(request, _('Reminder snoozed.'))
    return _back(request)


@login_required
@require_POST
def reminder_delete_view(request, pk):
    reminder, allowed = _own_reminder(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to delete this reminder.'))

    reminder.delete()
    logger.info(f"Reminder {pk} deleted by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True})

    messages.success(request, _('Reminder deleted.'))
    return _back(request)


@login_required
@require_GET
def reminder_upcoming_api(request):
    return JsonResponse(services.upcoming_reminders(request.user), safe=False)


@login_required
@require_GET
def reminder_count_api(request):
    return JsonResponse(services.reminder_counts(request.user))


# EMAIL TEMPLATES

def _template_for(request, pk, manage=False):
    template = get_object_or_404(EmailTemplate.objects.select_related('user'), pk=pk)
    if manage:
        allowed = template.user_id == request.user.id or request.user.is_admin()
    else:
        allowed = template.user_id == request.user.id or template.is_shared or request.user.is_admin()
    return template, allowed


def _template_payload(template):
    return {
        'id': template.pk,
        'name': template.name,
        'category': template.category,
        'subject': template.subject,
        'body': template.body,
        'variables': template.variables,
        'is_active': template.is_active,
        'is_shared': template.is_shared,
        'usage_count': template.usage_count,
        'owner': template.user.get_full_name(),
    }


@login_required
def template_list_view(request):
    templates = EmailTemplate.objects.accessible_to(request.user).select_related('user')

    category = request.GET.get('category', '')
    if category:
        templates = templates.filter(category=category)

    grouped = {}
    for template in templates.order_by('category', 'name'):
        grouped.setdefault(template.get_category_display(), []).append(template)

    context = {
        'grouped_templates': grouped,
        'categories': EmailTemplate.CATEGORY_CHOICES,
        'variables': EmailTemplate.AVAILABLE_VARIABLES,
        'current_category': category,
        'form': EmailTemplateForm(),
    }
    return render(request, 'reminders/template_list.html', context)


@login_required
def template_create_view(request):
    if request.method == 'POST':
        form = EmailTemplateForm(request.POST)
        if form.is_valid():
            template = form.save(commit=False)
            template.user = request.user
            template.save()
            logger.info(f"Email template {template.pk} created by {request.user.email}")

            if is_ajax(request):
                return JsonResponse({'success': True, 'template': _template_payload(template)}, status=201)
            messages.success(request, _('Template created successfully.'))
            return redirect('reminders:template_list')

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
    else:
        form = EmailTemplateForm()

    return render(request, 'reminders/template_form.html', {'form': form, 'is_edit': False,
                                                            'variables': EmailTemplate.AVAILABLE_VARIABLES})


@login_required
def template_edit_view(request, pk):
    template, allowed = _template_for(request, pk, manage=True)
    if not allowed:
        return deny(request, _('You do not have permission to edit this template.'))

    if request.method == 'POST':
        form = EmailTemplateForm(request.POST, instance=template)
        if form.is_valid():
            template = form.save()
            logger.info(f"Email template {template.pk} updated by {request.user.email}")

            if is_ajax(request):
                return JsonResponse({'success': True, 'template': _template_payload(template)})
            messages.success(request, _('Template updated.'))
            return redirect('reminders:template_list')

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Please correct the errors below.'))
    else:
        form = EmailTemplateForm(instance=template)

    return render(request, 'reminders/template_form.html', {'form': form, 'template': template, 'is_edit': True,
                                                            'variables': EmailTemplate.AVAILABLE_VARIABLES})


@login_required
@require_POST
def template_delete_view(request, pk):
    template, allowed = _template_for(request, pk, manage=True)
    if not allowed:
        return deny(request, _('You do not have permission to delete this template.'))

    template.delete()
    logger.info(f"Email template {pk} deleted by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True})
    messages.success(request, _('Template deleted.'))
    return redirect('reminders:template_list')


@login_required
@require_POST
def template_duplicate_view(request, pk):
    template, allowed = _template_for(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to use this template.'))

    copy = EmailTemplate.objects.create(
        user=request.user,
        name=f"{template.name} (Copy)",
        category=template.category,
        subject=template.subject,
        body=template.body,
        is_active=template.is_active,
        is_shared=False,
    )
    logger.info(f"Email template {template.pk} duplicated as {copy.pk} by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True, 'template': _template_payload(copy)}, status=201)
    messages.success(request, _('Template duplicated.'))
    return redirect('reminders:template_list')


@login_required
def template_preview_view(request, pk):
    template, allowed = _template_for(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to use this template.'))

    form = TemplateContextForm(request.GET or request.POST or None)
    data = {}
    if form.is_bound and form.is_valid():
        data = services.template_data(form.cleaned_data.get('contact'), form.cleaned_data.get('opportunity'))

    rendered = template.render(data, user=request.user)
    return JsonResponse({
        'subject': rendered['subject'],
        'body': rendered['body'],
        'variables_used': template.variables,
    })


@login_required
@require_POST
def template_send_view(request, pk):
    """Render the template for the chosen records and queue the email."""
    template, allowed = _template_for(request, pk)
    if not allowed:
        return deny(request, _('You do not have permission to use this template.'))
    if not template.is_active:
        return JsonResponse({'success': False, 'message': _('This template is inactive.')}, status=422)

    form = EmailTemplateSendForm(request.POST)
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': form.errors}, status=422)

    data = form.cleaned_data
    rendered = template.render(services.template_data(data.get('contact'), data.get('opportunity')), user=request.user)

    send_template_email.delay(
        template.pk,
        request.user.pk,
        data['to'],
        data['subject'] or rendered['subject'],
        data['body'] or rendered['body'],
        cc=data['cc'],
        bcc=data['bcc'],
        contact_id=data['contact'].pk if data.get('contact') else None,
        opportunity_id=data['opportunity'].pk if data.get('opportunity') else None,
    )
    logger.info(f"Email from template {template.pk} to {data['to']} queued by {request.user.email}")

    return JsonResponse({'success': True, 'message': _('The email is being sent.')})


@login_required
@require_GET
def template_api_list(request):
    templates = EmailTemplate.objects.accessible_to(request.user).active().select_related('user')
    if request.GET.get('category'):
        templates = templates.filter(category=request.GET['category'])
    templates = templates.order_by('-usage_count', 'name')
    return JsonResponse([_template_payload(template) for template in templates], safe=False)
