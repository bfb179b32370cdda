import os
import uuid

from django.conf import settings
from django.db import models
from django.urls import reverse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from taggit.managers import TaggableManager


class DocumentVisibility(models.TextChoices):
    PRIVATE = 'private', _('Private')
    TEAM = 'team', _('Team')
    COMPANY = 'company', _('Company')


def storage_folder(document):
    """documents/YYYY/MM/<uuid> for the document, dated by its creation."""
    from apps.core.services import settings_service

    root = str(settings_service.get_upload_settings()['storage_path'] or 'documents').strip('/')
    created = document.created_at or timezone.now()
    return f"{root}/{created:%Y/%m}/{document.uuid}"


def document_upload_path(instance, filename):
    return f"{storage_folder(instance)}/{os.path.basename(filename)}"


def version_upload_path(instance, filename):
    return f"{storage_folder(instance.document)}/v{instance.version}-{os.path.basename(filename)}"


def human_size(size_bytes):
    size = float(size_bytes or 0)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if size < 1024 or unit == 'GB':
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.2f} {unit}"
        size /= 1024


class DocumentQuerySet(models.QuerySet):

    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def trashed(self):
        return self.filter(deleted_at__isnull=False)


class AliveDocumentManager(models.Manager.from_queryset(DocumentQuerySet)):
    """Soft deleted documents are hidden from the default manager."""

    def get_queryset(self):
        return super().get_queryset().alive()


class Document(models.Model):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=255)
    original_filename = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=150, blank=True)
    extension = models.CharField(max_length=20, blank=True)
    size_bytes = models.PositiveBigIntegerField(default=0)
    file = models.FileField(upload_to=document_upload_path, max_length=500)

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='documents')
    visibility = models.CharField(max_length=20, choices=DocumentVisibility.choices,
                                  default=DocumentVisibility.PRIVATE)
    description = models.TextField(blank=True)
    tags = TaggableManager(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = AliveDocumentManager()
    all_objects = DocumentQuerySet.as_manager()

    class Meta:
        verbose_name = 'Document'
        verbose_name_plural = 'Documents'
        ordering = ['-created_at']
        base_manager_name = 'all_objects'

    def __str__(self):
        return self.name

    def get_absolute_url(self):
        return reverse('documents:document_list') + f'?highlight={self.pk}'

    @property
    def size_human(self):
        return human_size(self.size_bytes)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def latest_version(self):
        return self.versions.order_by('-version').first()

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def delete_files(self):
        """Remove the stored file of every version (and the main file)."""
        names = {self.file.name} | set(self.versions.values_list('file', flat=True))
        storage = self.file.storage
        for name in filter(None, names):
            if storage.exists(name):
                storage.delete(name)


class DocumentVersion(models.Model):
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='versions')
    version = models.PositiveIntegerField()
    file = models.FileField(upload_to=version_upload_path, max_length=500)
    original_filename = models.CharField(max_length=255, blank=True)
    mime_type = models.CharField(max_length=150, blank=True)
    size_bytes = models.PositiveBigIntegerField(default=0)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='document_versions')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Document version'
        verbose_name_plural = 'Document versions'
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(fields=['document', 'version'], name='document_version_unique'),
        ]

    def __str__(self):
        return f"{self.document} v{self.version}"

    @property
    def size_human(self):
        return human_size(self.size_bytes)


class DocumentLink(models.Model):
    """Attaches a document to a company or to a contact."""

    TYPE_COMPANY = 'company'
    TYPE_CONTACT = 'contact'
    TYPES = (TYPE_COMPANY, TYPE_CONTACT)

    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='links')
    company = models.ForeignKey('contacts.Company', on_delete=models.CASCADE, null=True, blank=True,
                                related_name='document_links')
    contact = models.ForeignKey('contacts.Contact', on_delete=models.CASCADE, null=True, blank=True,
                                related_name='document_links')
    role = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Document link'
        verbose_name_plural = 'Document links'
        constraints = [
            models.UniqueConstraint(fields=['document', 'company'], condition=models.Q(company__isnull=False),
                                    name='document_link_company_unique'),
            models.UniqueConstraint(fields=['document', 'contact'], condition=models.Q(contact__isnull=False),
                                    name='document_link_contact_unique'),
        ]

    def __str__(self):
        return f"{self.document} -> {self.target}"

    @property
    def link_type(self):
        return self.TYPE_COMPANY if self.company_id else self.TYPE_CONTACT

    @property
    def target(self):
        return self.company if self.company_id else self.contact
