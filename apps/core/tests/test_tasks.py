"""
Core Tasks Tests
================

Test Coverage:
1. purge_old_activity_logs deletes rows older than data_retention_days
2. A retention of 0 keeps everything
3. Invalid retention value keeps everything

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_tasks
"""

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.core.models import ActivityLog
from apps.core.services import settings_service
from apps.core.tasks import purge_old_activity_logs


class PurgeActivityLogsTest(TestCase):

    def setUp(self):
        settings_service.clear_cache()
        self.addCleanup(settings_service.clear_cache)
        now = timezone.now()
        ActivityLog.objects.create(description='Old', created_at=now - timedelta(days=400))
        ActivityLog.objects.create(description='Recent', created_at=now - timedelta(days=10))

    def test_purges_rows_past_retention(self):
        deleted = purge_old_activity_logs()

        self.assertEqual(deleted, 1)
        self.assertEqual(list(ActivityLog.objects.values_list('description', flat=True)), ['Recent'])

    def test_zero_retention_keeps_everything(self):
        settings_service.set('data_retention_days', 0, 'system')

        self.assertEqual(purge_old_activity_logs(), 0)
        self.assertEqual(ActivityLog.objects.count(), 2)

    def test_invalid_retention_keeps_everything(self):
        settings_service.set('data_retention_days', 'forever', 'system')

        with self.assertLogs('apps.core.tasks', level='ERROR'):
            self.assertEqual(purge_old_activity_logs(), 0)
        self.assertEqual(ActivityLog.objects.count(), 2)
