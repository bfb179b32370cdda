import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.shortcuts import render, redirect
from django.utils.translation import gettext as _

from apps.accounts.decorators import deny
from . import policies, services
from .forms import DocumentUploadForm, DocumentFilterForm
from .models import Document
from .validators import allowed_extensions, max_upload_size_mb


logger = logging.getLogger(__name__)


@login_required
def document_list_view(request):
    if not policies.can_view_any_document(request.user):
        return deny(request, _('You do not have permission to view documents.'))

    documents = policies.visible_documents(
        request.user,
        Document.objects.select_related('owner').prefetch_related('tags', 'links__company', 'links__contact'),
    )

    filter_form = DocumentFilterForm(request.GET)
    if filter_form.is_valid():
        documents = services.filter_documents(documents, filter_form.cleaned_data)

    paginator = Paginator(documents.order_by('-created_at'), getattr(settings, 'PAGINATION_SIZE', 25))
    page_obj = paginator.get_page(request.GET.get('page', 1))

    context = {
        'documents': page_obj.object_list,
        'page_obj': page_obj,
        'filter_form': filter_form,
        'can_upload': policies.can_upload_document(request.user),
        'total_count': paginator.count,
    }
    return render(request, 'documents/document_list.html', context)


@login_required
def document_upload_view(request):
    if not policies.can_upload_document(request.user):
        return deny(request, _('You do not have permission to upload documents.'))

    if request.method == 'POST':
        form = DocumentUploadForm(request.POST, request.FILES, user=request.user)
        if form.is_valid():
            data = form.cleaned_data
            try:
                document = services.store_document(
                    request.user,
                    data['file'],
                    name=data['name'],
                    description=data['description'],
                    visibility=data['visibility'],
                    tags=data['tags'],
                    links=form.links(),
                )
            except ValidationError as exc:
                form.add_error(None, exc)
            else:
                messages.success(request, _('Document "%(name)s" uploaded.') % {'name': document.name})
                return redirect('documents:document_list')
        else:
            logger.warning(f"Document upload rejected for {request.user.email}: {form.errors.as_json()}")
    else:
        form = DocumentUploadForm(user=request.user)

    context = {
        'form': form,
        'allowed_extensions': allowed_extensions(),
        'max_file_size': max_upload_size_mb(),
    }
    return render(request, 'documents/document_upload.html', context)
