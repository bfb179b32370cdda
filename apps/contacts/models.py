from django.conf import settings
from django.db import models
from django.urls import reverse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ContactStatus(models.TextChoices):
    NOUVEAU = 'nouveau', _('New')
    QUALIFICATION = 'qualification', _('Qualification')
    PROPOSITION_ENVOYEE = 'proposition_envoyee', _('Proposal sent')
    NEGOCIATION = 'negociation', _('Negotiation')
    CONVERTI = 'converti', _('Converted')
    PERDU = 'perdu', _('Lost')


class CompanyStatus(models.TextChoices):
    PROSPECT = 'Prospect', _('Prospect')
    CLIENT = 'Client', _('Client')
    INACTIF = 'Inactif', _('Inactive')


class Company(models.Model):
    """Customer or prospect organisation. Owned by the user who created it."""

    name = models.CharField(max_length=255, help_text='Company name')
    domain = models.CharField(max_length=255, blank=True, help_text='Web domain (example.com)')
    industry = models.CharField(max_length=255, blank=True)
    size = models.CharField(max_length=50, blank=True, help_text='Headcount range, e.g. 10-50')
    status = models.CharField(max_length=20, choices=CompanyStatus.choices, default=CompanyStatus.PROSPECT, db_index=True)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='companies',
                              help_text='Account owner')

    # Address
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=255, blank=True)
    zipcode = models.CharField(max_length=50, blank=True)
    country = models.CharField(max_length=255, blank=True)

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Company'
        verbose_name_plural = 'Companies'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'status'], name='company_owner_status_idx'),
            models.Index(fields=['name'], name='company_name_idx'),
        ]

    def __str__(self):
        return self.name

    def get_absolute_url(self):
        return reverse('contacts:company_detail', kwargs={'pk': self.pk})

    @property
    def full_address(self):
        parts = [self.address, f"{self.zipcode} {self.city}".strip(), self.country]
        return ', '.join(part for part in parts if part)


class Contact(models.Model):
    """A person the sales team talks to, optionally attached to a Company."""

    name = models.CharField(max_length=255, help_text="Contact's full name")
    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='contacts')
    status = models.CharField(max_length=30, choices=ContactStatus.choices, default=ContactStatus.NOUVEAU, db_index=True)
    email = models.EmailField(max_length=255, unique=True, null=True, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True, db_index=True)
    address = models.CharField(max_length=255, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='contacts',
                             help_text='Owner (sales rep)')
    latitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    longitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Contact'
        verbose_name_plural = 'Contacts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='contact_user_status_idx'),
            models.Index(fields=['name'], name='contact_name_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Empty strings would collide on the unique index
        if not self.email:
            self.email = None
        super().save(*args, **kwargs)

    def get_absolute_url(self):
        return reverse('contacts:contact_detail', kwargs={'pk': self.pk})

    @property
    def first_name(self):
        return self.name.split()[0] if self.name else ''

    def get_initials(self):
        """'Alice Martin' → 'AM'"""
        parts = self.name.split()
        if len(parts) >= 2:
            return f"{parts[0][0]}{parts[1][0]}".upper()
        elif len(parts) == 1:
            return parts[0][0].upper()
        return "?"


class ContactImport(models.Model):
    """
    One CSV import run

    Rows are processed by one Celery task each. Counters are updated
    atomically by the tasks; the last task to finish computes the final
    status and notifies the user.
    """

    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_COMPLETED = 'completed'
    STATUS_PARTIAL = 'partial_success'
    STATUS_FAILED = 'failed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, _('Pending')),
        (STATUS_PROCESSING, _('Processing')),
        (STATUS_COMPLETED, _('Completed')),
        (STATUS_PARTIAL, _('Partially imported')),
        (STATUS_FAILED, _('Failed')),
        (STATUS_CANCELLED, _('Cancelled')),
    ]

    FINAL_STATUSES = (STATUS_COMPLETED, STATUS_PARTIAL, STATUS_FAILED, STATUS_CANCELLED)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='contact_imports')
    filename = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    total_rows = models.PositiveIntegerField(default=0)
    processed_rows = models.PositiveIntegerField(default=0)
    imported_rows = models.PositiveIntegerField(default=0)
    failed_rows = models.PositiveIntegerField(default=0)
    cancelled = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Contact import'
        verbose_name_plural = 'Contact imports'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.filename} ({self.get_status_display()})"

    @property
    def skipped_rows(self):
        return self.total_rows - self.imported_rows

    @property
    def is_finished(self):
        return self.status in self.FINAL_STATUSES

    @property
    def progress(self):
        if not self.total_rows:
            return 100
        return int(self.processed_rows * 100 / self.total_rows)

    def compute_final_status(self):
        if self.cancelled:
            return self.STATUS_CANCELLED
        if self.imported_rows == 0 and self.total_rows > 0:
            return self.STATUS_FAILED
        if self.failed_rows > 0:
            return self.STATUS_PARTIAL
        return self.STATUS_COMPLETED

    def finish(self):
        self.status = self.compute_final_status()
        self.finished_at = timezone.now()
        self.save(update_fields=['status', 'finished_at'])


class ContactImportFailure(models.Model):
    """A CSV row that could not be imported, with its validation errors."""

    batch = models.ForeignKey(ContactImport, on_delete=models.CASCADE, related_name='failures')
    row_number = models.PositiveIntegerField()
    data = models.JSONField(default=dict)
    errors = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['row_number']

    def __str__(self):
        return f"Row {self.row_number} of import #{self.batch_id}"
