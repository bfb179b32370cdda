from django.apps import AppConfig


class RemindersConfig(AppConfig):

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reminders'
    verbose_name = 'Reminders & Email templates'
