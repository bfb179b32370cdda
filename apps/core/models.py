# Models:
# 1. CrmSetting - Runtime configuration stored as key / JSON value rows
# 2. ActivityLog - Audit trail of created / updated / deleted CRM records


from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# CRM SETTING MODEL
class CrmSetting(models.Model):
    """
    One configurable value of the CRM

    Values are JSON so a setting can hold a string, a number, a boolean
    or a list (e.g. upload_allowed_extensions). Read them through
    apps.core.services.settings_service, which caches the whole table.
    """

    CATEGORY_CHOICES = [
        ('general', _('General')),
        ('identity', _('Identity')),
        ('email', _('Email')),
        ('security', _('Security')),
        ('sales', _('Sales')),
        ('system', _('System')),
        ('branding', _('Branding')),
        ('upload', _('Upload')),
    ]

    key = models.CharField(_('key'), max_length=100, unique=True)
    value = models.JSONField(_('value'), null=True, blank=True)
    category = models.CharField(_('category'), max_length=50, choices=CATEGORY_CHOICES, default='general', db_index=True)
    description = models.CharField(_('description'), max_length=255, blank=True)
    is_public = models.BooleanField(_('public'), default=False, help_text=_('Exposed to every page (branding, identity...)'))
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('CRM setting')
        verbose_name_plural = _('CRM settings')
        ordering = ['category', 'key']

    def __str__(self):
        return f"{self.category}.{self.key}"

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        return setting.value if setting else default

    @classmethod
    def set_value(cls, key, value, category='general'):
        if value is None:
            value = ''
        cls.objects.update_or_create(key=key, defaults={'value': value, 'category': category})

    @classmethod
    def get_all_grouped(cls):
        """{category: {key: value}} for every setting."""
        grouped = {}
        for setting in cls.objects.all():
            grouped.setdefault(setting.category, {})[setting.key] = setting.value if setting.value is not None else ''
        return grouped

    @classmethod
    def get_public_settings(cls):
        return {
            setting.key: setting.value if setting.value is not None else ''
            for setting in cls.objects.filter(is_public=True)
        }


# ACTIVITY LOG MODEL
class ActivityLog(models.Model):
    """
    Audit trail entry

    subject: the record the entry is about (any model, generic FK)
    causer: the user who triggered it (null for background jobs)
    properties: free JSON (changed fields, old/new values...)
    """

    log_name = models.CharField(_('log name'), max_length=100, default='default', db_index=True)
    description = models.CharField(_('description'), max_length=255)

    subject_type = models.ForeignKey(ContentType, on_delete=models.CASCADE, null=True, blank=True, related_name='+')
    subject_id = models.PositiveBigIntegerField(null=True, blank=True)
    subject = GenericForeignKey('subject_type', 'subject_id')

    causer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='activity_logs', verbose_name=_('causer'))
    properties = models.JSONField(_('properties'), default=dict, blank=True)
    created_at = models.DateTimeField(_('created at'), default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('activity log')
        verbose_name_plural = _('activity logs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['subject_type', 'subject_id'], name='activity_subject_idx'),
            models.Index(fields=['causer', 'created_at'], name='activity_causer_idx'),
        ]

    def __str__(self):
        return f"{self.log_name}: {self.description}"

    @property
    def subject_label(self):
        subject = self.subject
        if subject is None:
            return self.properties.get('name') or self.properties.get('title') or ''
        return str(subject)
