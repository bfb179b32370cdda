"""
Document storage

store_document() saves the upload, creates version 1 and the links,
add_version() stores the next version and moves the document pointers
to it. Link targets that do not exist are reported as ValidationError.
"""

import logging
import mimetypes
import os

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Max, Q
from django.utils.translation import gettext as _

from apps.contacts.models import Company, Contact
from apps.core.utils import clamp_int
from .models import Document, DocumentVersion, DocumentLink
from .validators import file_extension


logger = logging.getLogger(__name__)

MAX_ID = 2 ** 63 - 1


def guess_mime_type(uploaded_file):
    content_type = getattr(uploaded_file, 'content_type', None)
    if content_type and content_type != 'application/octet-stream':
        return content_type
    return mimetypes.guess_type(uploaded_file.name)[0] or 'application/octet-stream'


def _link_target(link_type, target_id):
    model = Company if link_type == DocumentLink.TYPE_COMPANY else Contact
    target = model.objects.filter(pk=target_id).first()
    if target is None:
        raise ValidationError(
            _('The %(type)s %(id)s does not exist.'),
            code='unknown_link_target',
            params={'type': link_type, 'id': target_id},
        )
    return target


def attach_link(document, link_type, target_id, role=''):
    target = _link_target(link_type, target_id)
    link, created = DocumentLink.objects.update_or_create(
        document=document,
        **{link_type: target},
        defaults={'role': role or ''},
    )
    if created:
        logger.info(f"Document {document.pk} linked to {link_type} {target_id}")
    return link


def detach_link(document, link_type, target_id):
    deleted, _details = DocumentLink.objects.filter(document=document, **{f'{link_type}_id': target_id}).delete()
    if deleted:
        logger.info(f"Document {document.pk} unlinked from {link_type} {target_id}")
    return bool(deleted)


@transaction.atomic
def store_document(user, uploaded_file, name='', description='', visibility='private', tags=None, links=None):
    original_filename = os.path.basename(uploaded_file.name)
    mime_type = guess_mime_type(uploaded_file)

    document = Document(
        name=(name or '').strip() or os.path.splitext(original_filename)[0],
        original_filename=original_filename,
        mime_type=mime_type,
        extension=file_extension(original_filename),
        size_bytes=uploaded_file.size,
        owner=user,
        visibility=visibility or 'private',
        description=description or '',
    )
    # Unknown link targets fail before anything reaches the storage
    for link in links or []:
        _link_target(link['type'], link['id'])

    document.file.save(original_filename, uploaded_file, save=False)
    try:
        document.save()

        if tags:
            document.tags.set(tags)

        DocumentVersion.objects.create(
            document=document,
            version=1,
            file=document.file.name,
            original_filename=original_filename,
            mime_type=mime_type,
            size_bytes=uploaded_file.size,
            created_by=user,
        )

        for link in links or []:
            attach_link(document, link['type'], link['id'], link.get('role', ''))
    except (ValidationError, DatabaseError):
        logger.warning(f"Upload of {original_filename} by {user.email} failed, removing the stored file")
        document.file.delete(save=False)
        raise

    logger.info(f"Document {document.pk} ({original_filename}) uploaded by {user.email}")
    return document


@transaction.atomic
def add_version(document, uploaded_file, user):
    """Store uploaded_file as version max+1 and point the document at it."""
    current = document.versions.aggregate(latest=Max('version'))['latest'] or 0
    original_filename = os.path.basename(uploaded_file.name)
    mime_type = guess_mime_type(uploaded_file)

    version = DocumentVersion(
        document=document,
        version=current + 1,
        original_filename=original_filename,
        mime_type=mime_type,
        size_bytes=uploaded_file.size,
        created_by=user,
    )
    version.file.save(original_filename, uploaded_file, save=False)
    try:
        version.save()

        document.file.name = version.file.name
        document.original_filename = original_filename
        document.mime_type = mime_type
        document.extension = file_extension(original_filename)
        document.size_bytes = uploaded_file.size
        document.save(update_fields=['file', 'original_filename', 'mime_type', 'extension', 'size_bytes', 'updated_at'])
    except DatabaseError:
        logger.warning(f"Version {version.version} of document {document.pk} failed, removing the stored file")
        version.file.delete(save=False)
        raise

    logger.info(f"Document {document.pk} version {version.version} uploaded by {user.email}")
    return version


def delete_document(document, hard=False):
    if not hard:
        document.soft_delete()
        logger.info(f"Document {document.pk} moved to trash")
        return

    document_id = document.pk
    document.delete_files()
    document.delete()
    logger.info(f"Document {document_id} permanently deleted")


def filter_documents(queryset, params):
    """
    Listing filters shared by the API and the HTML list

    search, tag, type (mime prefix such as "image/" or an extension),
    owner_id, company_id, contact_id.
    """
    term = (params.get('search') or '').strip()
    if term:
        queryset = queryset.filter(
            Q(name__icontains=term) |
            Q(original_filename__icontains=term) |
            Q(description__icontains=term) |
            Q(tags__name__icontains=term)
        ).distinct()

    tag = (params.get('tag') or '').strip()
    if tag:
        queryset = queryset.filter(tags__name__iexact=tag).distinct()

    file_type = (params.get('type') or '').strip().lower()
    if file_type:
        if '/' in file_type:
            queryset = queryset.filter(mime_type__istartswith=file_type)
        else:
            queryset = queryset.filter(extension__iexact=file_type.lstrip('.'))

    if params.get('owner_id'):
        queryset = queryset.filter(owner_id=clamp_int(params['owner_id'], 0, 0, MAX_ID))
    if params.get('company_id'):
        queryset = queryset.filter(links__company_id=clamp_int(params['company_id'], 0, 0, MAX_ID))
    if params.get('contact_id'):
        queryset = queryset.filter(links__contact_id=clamp_int(params['contact_id'], 0, 0, MAX_ID))

    return queryset
