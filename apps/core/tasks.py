import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from .models import ActivityLog
from .services import settings_service


logger = logging.getLogger(__name__)


@shared_task
def purge_old_activity_logs():
    """
    Delete activity log rows older than the 'data_retention_days' setting

    Scheduled daily in config/celery.py. A retention of 0 keeps everything.
    """
    try:
        days = int(settings_service.get('data_retention_days', 365) or 0)
    except (TypeError, ValueError):
        logger.error("Invalid 'data_retention_days' setting, activity logs kept")
        return 0

    if days <= 0:
        return 0

    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = ActivityLog.objects.filter(created_at__lt=cutoff).delete()
    if deleted:
        logger.info(f"{deleted} activity log row(s) older than {days} days deleted")
    return deleted
