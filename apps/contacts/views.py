import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.contenttypes.models import ContentType
from django.core.paginator import Paginator
from django.db.models import Q, Count
from django.http import JsonResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.utils.translation import gettext as _
from django.views.decorators.http import require_POST

from apps.accounts.decorators import permission_required, ajax_required, deny, is_ajax
from apps.core.models import ActivityLog
from . import policies
from .forms import ContactForm, ContactFilterForm, ContactStatusForm, CompanyForm, ContactImportForm
from .importer import start_import, cancel_import
from .models import Contact, Company, ContactStatus, CompanyStatus, ContactImport
from .serializers import ContactImportSerializer


logger = logging.getLogger(__name__)


def _paginate(request, queryset):
    paginator = Paginator(queryset, getattr(settings, 'PAGINATION_SIZE', 25))
    page_obj = paginator.get_page(request.GET.get('page', 1))
    return page_obj, paginator.get_elided_page_range(page_obj.number, on_each_side=2, on_ends=1)


def _activity_for(instance, limit=20):
    return ActivityLog.objects.filter(
        subject_type=ContentType.objects.get_for_model(instance),
        subject_id=instance.pk,
    ).select_related('causer')[:limit]


# CONTACTS

@login_required
def contact_list_view(request):
    if not policies.can_view_any_contact(request.user):
        return deny(request, _('You do not have permission to view contacts.'))

    contacts = policies.visible_contacts(
        request.user,
        Contact.objects.select_related('company', 'user'),
    )

    filter_form = ContactFilterForm(request.GET)
    search_query = ''

    if filter_form.is_valid():
        search_query = filter_form.cleaned_data.get('search', '').strip()
        if search_query:
            contacts = contacts.filter(
                Q(name__icontains=search_query) |
                Q(email__icontains=search_query) |
                Q(phone__icontains=search_query)
            )

        if filter_form.cleaned_data.get('status'):
            contacts = contacts.filter(status=filter_form.cleaned_data['status'])

        if filter_form.cleaned_data.get('company'):
            contacts = contacts.filter(company=filter_form.cleaned_data['company'])

        if filter_form.cleaned_data.get('unassigned'):
            contacts = contacts.filter(company__isnull=True)

    contacts = contacts.order_by('-created_at')
    page_obj, page_range = _paginate(request, contacts)

    context = {
        'contacts': page_obj,
        'page_obj': page_obj,
        'page_range': page_range,
        'is_paginated': page_obj.has_other_pages(),
        'filter_form': filter_form,
        'search_query': search_query,
        'total_count': page_obj.paginator.count,
        'can_create': policies.can_create_contact(request.user),
    }

    return render(request, 'contacts/contact_list.html', context)


@login_required
def contact_detail_view(request, pk):
    contact = get_object_or_404(Contact.objects.select_related('company', 'user'), pk=pk)

    if not policies.can_view_contact(request.user, contact):
        return deny(request, _('You do not have permission to view this contact.'))

    context = {
        'contact': contact,
        'opportunities': contact.opportunities.select_related('owner').order_by('-created_at'),
        'document_links': contact.document_links.select_related('document').filter(document__deleted_at__isnull=True),
        'reminders': contact.reminders.filter(status='pending').order_by('reminder_date')[:5],
        'activities': _activity_for(contact),
        'status_form': ContactStatusForm(initial={'status': contact.status}),
        'can_edit': policies.can_update_contact(request.user, contact),
        'can_delete': policies.can_delete_contact(request.user, contact),
    }

    return render(request, 'contacts/contact_detail.html', context)


@login_required
def contact_create_view(request):
    if not policies.can_create_contact(request.user):
        return deny(request, _('You do not have permission to create contacts.'))

    if request.method == 'POST':
        form = ContactForm(request.POST)

        if form.is_valid():
            contact = form.save(commit=False)
            contact.user = request.user
            contact.save()

            logger.info(f"Contact {contact.pk} created by {request.user.email}")
            messages.success(request, _('Contact "%(name)s" created successfully.') % {'name': contact.name})
            return redirect('contacts:contact_detail', pk=contact.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = ContactForm(initial={'company': request.GET.get('company')})

    return render(request, 'contacts/contact_form.html', {'form': form, 'is_edit': False})


@login_required
def contact_edit_view(request, pk):
    contact = get_object_or_404(Contact, pk=pk)

    if not policies.can_update_contact(request.user, contact):
        return deny(request, _('You do not have permission to edit this contact.'))

    if request.method == 'POST':
        form = ContactForm(request.POST, instance=contact)

        if form.is_valid():
            contact = form.save()
            logger.info(f"Contact {contact.pk} updated by {request.user.email}")
            messages.success(request, _('Contact updated successfully.'))
            return redirect('contacts:contact_detail', pk=contact.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = ContactForm(instance=contact)

    return render(request, 'contacts/contact_form.html', {'form': form, 'contact': contact, 'is_edit': True})


@login_required
@require_POST
def contact_delete_view(request, pk):
    contact = get_object_or_404(Contact, pk=pk)

    if not policies.can_delete_contact(request.user, contact):
        return deny(request, _('You do not have permission to delete this contact.'))

    name = contact.name
    contact.delete()
    logger.info(f"Contact {pk} deleted by {request.user.email}")

    if is_ajax(request):
        return JsonResponse({'success': True})

    messages.success(request, _('Contact "%(name)s" deleted.') % {'name': name})
    return redirect('contacts:contact_list')


@login_required
@require_POST
def contact_change_status_view(request, pk):
    """Kanban drag & drop and the detail page status selector."""
    contact = get_object_or_404(Contact, pk=pk)

    if not policies.can_update_contact(request.user, contact):
        return deny(request, _('You do not have permission to edit this contact.'))

    form = ContactStatusForm(request.POST)
    if not form.is_valid():
        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
        messages.error(request, _('Invalid status.'))
        return redirect('contacts:contact_detail', pk=contact.pk)

    old_status = contact.get_status_display()
    contact.status = form.cleaned_data['status']
    contact.save(update_fields=['status', 'updated_at'])
    logger.info(f"Contact {contact.pk} moved from {old_status} to {contact.status}")

    if is_ajax(request):
        return JsonResponse({
            'success': True,
            'contact': {'id': contact.pk, 'status': contact.status, 'status_label': str(contact.get_status_display())},
        })

    messages.success(request, _('Status changed to %(status)s.') % {'status': contact.get_status_display()})
    return redirect('contacts:contact_detail', pk=contact.pk)


@login_required
def contact_kanban_view(request):
    if not policies.can_view_any_contact(request.user):
        return deny(request, _('You do not have permission to view contacts.'))

    contacts = policies.visible_contacts(request.user, Contact.objects.select_related('company', 'user'))

    search_query = request.GET.get('search', '').strip()
    if search_query:
        contacts = contacts.filter(
            Q(name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query)
        )

    columns = []
    total_count = 0

    for value, label in ContactStatus.choices:
        column_contacts = contacts.filter(status=value).order_by('-updated_at')
        count = column_contacts.count()
        total_count += count

        columns.append({
            'status': value,
            'label': label,
            'contacts': column_contacts,
            'count': count,
        })

    context = {
        'columns': columns,
        'total_count': total_count,
        'search_query': search_query,
    }

    return render(request, 'contacts/contact_kanban.html', context)


# COMPANIES

@login_required
@permission_required('view companies')
def company_list_view(request):
    companies = policies.visible_companies(
        request.user,
        Company.objects.select_related('owner').annotate(contacts_count=Count('contacts')),
    )

    search_query = request.GET.get('search', '').strip()
    if search_query:
        companies = companies.filter(
            Q(name__icontains=search_query) |
            Q(domain__icontains=search_query) |
            Q(industry__icontains=search_query)
        )

    status_filter = request.GET.get('status', '')
    if status_filter in CompanyStatus.values:
        companies = companies.filter(status=status_filter)

    companies = companies.order_by('name')
    page_obj, page_range = _paginate(request, companies)

    context = {
        'companies': page_obj,
        'page_obj': page_obj,
        'page_range': page_range,
        'is_paginated': page_obj.has_other_pages(),
        'search_query': search_query,
        'status_filter': status_filter,
        'statuses': CompanyStatus.choices,
        'total_count': page_obj.paginator.count,
    }

    return render(request, 'contacts/company_list.html', context)


@login_required
def company_detail_view(request, pk):
    company = get_object_or_404(Company.objects.select_related('owner'), pk=pk)

    if not policies.can_view_company(request.user, company):
        return deny(request, _('You do not have permission to view this company.'))

    context = {
        'company': company,
        'contacts': company.contacts.select_related('user').order_by('name'),
        'opportunities': company.opportunities.select_related('contact').order_by('-created_at'),
        'document_links': company.document_links.select_related('document').filter(document__deleted_at__isnull=True),
        'activities': _activity_for(company),
        'can_edit': policies.can_update_company(request.user, company),
        'can_delete': policies.can_delete_company(request.user, company),
    }

    return render(request, 'contacts/company_detail.html', context)


@login_required
@permission_required('create companies')
def company_create_view(request):
    if request.method == 'POST':
        form = CompanyForm(request.POST, user=request.user)

        if form.is_valid():
            company = form.save(commit=False)
            if company.owner is None:
                company.owner = request.user
            company.save()

            logger.info(f"Company {company.pk} created by {request.user.email}")
            messages.success(request, _('Company "%(name)s" created successfully.') % {'name': company.name})
            return redirect('contacts:company_detail', pk=company.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = CompanyForm(user=request.user)

    return render(request, 'contacts/company_form.html', {'form': form, 'is_edit': False})


@login_required
def company_edit_view(request, pk):
    company = get_object_or_404(Company, pk=pk)

    if not policies.can_update_company(request.user, company):
        return deny(request, _('You do not have permission to edit this company.'))

    if request.method == 'POST':
        form = CompanyForm(request.POST, instance=company, user=request.user)

        if form.is_valid():
            company = form.save()
            logger.info(f"Company {company.pk} updated by {request.user.email}")
            messages.success(request, _('Company updated successfully.'))
            return redirect('contacts:company_detail', pk=company.pk)

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = CompanyForm(instance=company, user=request.user)

    return render(request, 'contacts/company_form.html', {'form': form, 'company': company, 'is_edit': True})


@login_required
@require_POST
def company_delete_view(request, pk):
    company = get_object_or_404(Company, pk=pk)

    if not policies.can_delete_company(request.user, company):
        return deny(request, _('You do not have permission to delete this company.'))

    name = company.name
    company.delete()
    logger.info(f"Company {pk} deleted by {request.user.email}")

    messages.success(request, _('Company "%(name)s" deleted.') % {'name': name})
    return redirect('contacts:company_list')


# CSV IMPORT

@login_required
@permission_required('import contacts')
def contact_import_view(request):
    if request.method == 'POST':
        form = ContactImportForm(request.POST, request.FILES)

        if form.is_valid():
            batch = start_import(request.user, form.cleaned_data['file'], rows=form.rows)

            if is_ajax(request):
                return JsonResponse({'success': True, 'batch': ContactImportSerializer(batch).data}, status=202)

            messages.success(
                request,
                _('Import of %(count)d rows started. You will receive an email when it is done.') % {'count': batch.total_rows},
            )
            return redirect('contacts:contact_import_detail', pk=batch.pk)

        if is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=422)
    else:
        form = ContactImportForm()

    context = {
        'form': form,
        'imports': ContactImport.objects.filter(user=request.user)[:10],
    }

    return render(request, 'contacts/contact_import.html', context)


@login_required
def contact_import_detail_view(request, pk):
    batch = get_object_or_404(ContactImport, pk=pk, user=request.user)
    return render(request, 'contacts/contact_import_detail.html', {
        'batch': batch,
        'failures': batch.failures.all()[:100],
    })


@login_required
@ajax_required
def contact_import_status_view(request, pk):
    """Polled by the import page."""
    batch = get_object_or_404(ContactImport, pk=pk, user=request.user)
    return JsonResponse(ContactImportSerializer(batch).data)


@login_required
@require_POST
def contact_import_cancel_view(request, pk):
    batch = get_object_or_404(ContactImport, pk=pk, user=request.user)

    cancelled = cancel_import(batch)

    if is_ajax(request):
        return JsonResponse({'success': cancelled, 'batch': ContactImportSerializer(batch).data}, status=200 if cancelled else 409)

    if cancelled:
        messages.success(request, _('The import has been cancelled.'))
    else:
        messages.error(request, _('This import is already finished.'))
    return redirect('contacts:contact_import_detail', pk=batch.pk)
