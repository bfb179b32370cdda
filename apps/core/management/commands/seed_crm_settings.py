from django.core.management.base import BaseCommand

from apps.core.defaults import seed_settings
from apps.core.models import CrmSetting
from apps.core.services import settings_service


class Command(BaseCommand):
    help = 'Insert the default CRM settings (existing keys are kept unless --overwrite)'

    def add_arguments(self, parser):
        parser.add_argument('--overwrite', action='store_true', help='Reset existing keys to their default value')

    def handle(self, *args, **options):
        count = seed_settings(CrmSetting, overwrite=options['overwrite'])
        settings_service.clear_cache()
        self.stdout.write(self.style.SUCCESS(f"{count} CRM setting(s) seeded"))
