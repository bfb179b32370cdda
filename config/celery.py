# Celery runs the CRM background jobs:
# - contact CSV import (one task per row)
# - reminder notifications
# - email template sending
# - activity log retention
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('crm')

# All settings prefixed with 'CELERY_' will be used
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py file in each installed app
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)

app.conf.beat_schedule = {
    # Email users about reminders that just became due
    'send-due-reminders': {
        'task': 'apps.reminders.tasks.send_due_reminders',
        'schedule': crontab(minute='*/5'),  # Every 5 minutes
    },

    # Drop activity log rows older than the 'data_retention_days' setting
    'purge-old-activity-logs': {
        'task': 'apps.core.tasks.purge_old_activity_logs',
        'schedule': crontab(hour=3, minute=0),  # Every day at 3:00 AM
    },
}


# CELERY TASK ANNOTATIONS

app.conf.task_annotations = {
    # Protect the SMTP relay
    'apps.reminders.tasks.send_template_email': {
        'rate_limit': '30/m',
    },
}


@app.task(bind=True, ignore_result=True)
def debug_task(self):
    """
    Debug task to test Celery is working

    Usage:
        from config.celery import debug_task
        debug_task.delay()
    """
    print(f'Request: {self.request!r}')
