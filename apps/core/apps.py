from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for Core application

    This app contains:
        - CrmSetting model (runtime configuration)
        - ActivityLog model (audit trail)
        - Dashboard views and statistics
        - CRM settings endpoints
    """
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'
