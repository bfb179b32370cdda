"""
Core services

settings_service: read-through cache over the CrmSetting table
activity_logger: writes ActivityLog rows for CRM records
"""

import logging

from django.conf import settings
from django.contrib.contenttypes.models import ContentType
from django.core.cache import cache
from django.core.mail import EmailMessage, get_connection
from django.db import DatabaseError, transaction

from .defaults import seed_settings
from .models import CrmSetting, ActivityLog
from .utils import clean_setting_value


logger = logging.getLogger(__name__)


class SettingsService:
    """
    Cached access to CRM settings

    The whole table is loaded as {key: value} and cached under
    CRM_SETTINGS_CACHE_KEY for CRM_SETTINGS_CACHE_TIMEOUT seconds.
    Any write goes through set() or must call clear_cache().
    """

    @property
    def cache_key(self):
        return getattr(settings, 'CRM_SETTINGS_CACHE_KEY', 'crm_settings')

    @property
    def cache_timeout(self):
        return getattr(settings, 'CRM_SETTINGS_CACHE_TIMEOUT', 3600)

    def _load(self):
        return {
            setting.key: setting.value if setting.value is not None else ''
            for setting in CrmSetting.objects.all()
        }

    def all(self):
        return cache.get_or_set(self.cache_key, self._load, self.cache_timeout)

    def get(self, key, default=None):
        value = self.all().get(key)
        return default if value is None else value

    def set(self, key, value, category='general'):
        CrmSetting.set_value(key, value, category)
        self.clear_cache()

    def clear_cache(self):
        cache.delete(self.cache_key)

    def get_all_grouped(self):
        return CrmSetting.get_all_grouped()

    def update_many(self, grouped):
        """
        Apply {category: {key: value}}. Unknown keys are skipped.

        Returns the number of settings written.
        """
        known = set(CrmSetting.objects.values_list('key', flat=True))
        updated = 0
        with transaction.atomic():
            for category, values in grouped.items():
                if not isinstance(values, dict):
                    continue
                for key, value in values.items():
                    if key not in known:
                        logger.warning(f"Unknown CRM setting '{key}' skipped")
                        continue
                    CrmSetting.set_value(key, clean_setting_value(value), category)
                    updated += 1
        self.clear_cache()
        return updated

    def reset(self):
        """Drop every setting and seed the defaults again."""
        with transaction.atomic():
            CrmSetting.objects.all().delete()
            count = seed_settings(CrmSetting)
        self.clear_cache()
        return count

    # GROUP ACCESSORS

    def get_upload_settings(self):
        return {
            'allowed_extensions': self.get('upload_allowed_extensions', settings.DOCUMENT_ALLOWED_EXTENSIONS),
            'max_file_size': self.get('upload_max_file_size', settings.DOCUMENT_MAX_FILE_SIZE_MB),  # MB
            'storage_path': self.get('upload_storage_path', 'documents'),
        }

    def get_identity_settings(self):
        return {
            'company_name': self.get('company_name', 'CRM Catalyst'),
            'company_logo': self.get('company_logo', ''),
            'company_email': self.get('company_email', ''),
            'company_phone': self.get('company_phone', ''),
            'company_address': self.get('company_address', ''),
            'company_city': self.get('company_city', ''),
            'company_postal_code': self.get('company_postal_code', ''),
            'company_country': self.get('company_country', ''),
        }

    def get_email_settings(self):
        return {
            'smtp_host': self.get('smtp_host', settings.EMAIL_HOST),
            'smtp_port': self.get('smtp_port', settings.EMAIL_PORT),
            'smtp_username': self.get('smtp_username', settings.EMAIL_HOST_USER),
            'smtp_password': self.get('smtp_password', settings.EMAIL_HOST_PASSWORD),
            'smtp_encryption': self.get('smtp_encryption', 'tls' if settings.EMAIL_USE_TLS else ''),
            'from_address': self.get('mail_from_address', settings.DEFAULT_FROM_EMAIL),
            'from_name': self.get('mail_from_name', ''),
        }

    def get_security_settings(self):
        return {
            'session_lifetime': self.get('session_lifetime', 120),
            'password_min_length': self.get('password_min_length', 8),
            'password_require_uppercase': self.get('password_require_uppercase', True),
            'password_require_lowercase': self.get('password_require_lowercase', True),
            'password_require_numbers': self.get('password_require_numbers', True),
            'password_require_special_chars': self.get('password_require_special_chars', False),
            'two_factor_enabled': self.get('two_factor_enabled', False),
        }

    def get_branding_settings(self):
        return {
            'company_logo_url': self.get('company_logo_url', ''),
            'primary_color': self.get('primary_color', '#0d9488'),
            'secondary_color': self.get('secondary_color', '#64748b'),
        }

    def get_mail_connection(self, fail_silently=False):
        """SMTP connection built from the email settings, over EMAIL_BACKEND."""
        smtp = self.get_email_settings()
        encryption = (smtp['smtp_encryption'] or '').lower()
        return get_connection(
            fail_silently=fail_silently,
            host=smtp['smtp_host'],
            port=int(smtp['smtp_port'] or 25),
            username=smtp['smtp_username'] or None,
            password=smtp['smtp_password'] or None,
            use_tls=encryption == 'tls',
            use_ssl=encryption == 'ssl',
        )

    def send_test_email(self, address):
        """Send a short message to `address` with the stored SMTP settings. Raises on SMTP errors."""
        smtp = self.get_email_settings()
        from_email = smtp['from_address']
        if smtp['from_name']:
            from_email = f"{smtp['from_name']} <{from_email}>"

        message = EmailMessage(
            subject='CRM email settings test',
            body=(
                'This message was sent to check the email configuration of the CRM.\n\n'
                f"SMTP server: {smtp['smtp_host']}:{smtp['smtp_port']}\n"
                f"Encryption: {smtp['smtp_encryption'] or 'none'}"
            ),
            from_email=from_email,
            to=[address],
            connection=self.get_mail_connection(),
        )
        message.send()
        logger.info(f"Test email sent to {address}")


settings_service = SettingsService()


class ActivityLogger:
    """
    Write ActivityLog rows

    Logging must never break the request that triggered it: database
    errors are logged and swallowed.
    """

    IGNORED_FIELDS = {'updated_at'}

    def log(self, description, subject=None, causer=None, properties=None, log_name='default'):
        try:
            entry = ActivityLog(
                log_name=log_name,
                description=description,
                causer=causer if causer is not None and getattr(causer, 'is_authenticated', False) else None,
                properties=properties or {},
            )
            if subject is not None and subject.pk is not None:
                entry.subject_type = ContentType.objects.get_for_model(subject)
                entry.subject_id = subject.pk
            # Savepoint: a failed insert must not poison the caller's transaction
            with transaction.atomic():
                entry.save()
            return entry
        except DatabaseError:
            logger.error("Could not write activity log '%s'", description, exc_info=True)
            return None

    def log_created(self, subject, causer=None, log_name='default'):
        label = subject._meta.verbose_name.title()
        return self.log(
            f"{label} created",
            subject=subject,
            causer=causer,
            properties={'attributes': self.snapshot(subject), 'name': str(subject)},
            log_name=log_name,
        )

    def log_updated(self, subject, changes, causer=None, log_name='default'):
        changes = {field: value for field, value in changes.items() if field not in self.IGNORED_FIELDS}
        if not changes:
            return None
        label = subject._meta.verbose_name.title()
        return self.log(
            f"{label} updated",
            subject=subject,
            causer=causer,
            properties={'changes': changes, 'name': str(subject)},
            log_name=log_name,
        )

    def log_deleted(self, subject, causer=None, log_name='default'):
        # Subject row is about to disappear: keep its name in properties only
        label = subject._meta.verbose_name.title()
        return self.log(
            f"{label} deleted",
            causer=causer,
            properties={'name': str(subject), 'id': subject.pk, 'type': subject._meta.model_name},
            log_name=log_name,
        )

    @staticmethod
    def snapshot(instance):
        """JSON friendly {field: value} of the concrete fields of instance."""
        data = {}
        for field in instance._meta.concrete_fields:
            value = field.value_from_object(instance)
            if value is None or isinstance(value, (str, int, float, bool, list, dict)):
                data[field.attname] = value
            else:
                data[field.attname] = str(value)
        return data

    def diff(self, old, new):
        """Changed fields between two snapshots as {field: {'old': x, 'new': y}}."""
        return {
            field: {'old': old.get(field), 'new': value}
            for field, value in new.items()
            if field not in self.IGNORED_FIELDS and old.get(field) != value
        }


activity_logger = ActivityLogger()
