from django.db.models.signals import post_save, pre_save, post_delete
from django.dispatch import receiver

from apps.core.middleware import get_current_user
from apps.core.services import activity_logger
from .models import Contact, Company


@receiver(pre_save, sender=Contact)
@receiver(pre_save, sender=Company)
def remember_previous_values(sender, instance, **kwargs):
    # Snapshot of the stored row, compared after save
    if instance.pk:
        previous = sender.objects.filter(pk=instance.pk).first()
        if previous is not None:
            instance._previous_snapshot = activity_logger.snapshot(previous)


@receiver(post_save, sender=Contact)
@receiver(post_save, sender=Company)
def log_saved(sender, instance, created, **kwargs):
    causer = get_current_user()

    if created:
        activity_logger.log_created(instance, causer=causer)
        return

    previous = getattr(instance, '_previous_snapshot', None)
    if previous is None:
        return

    changes = activity_logger.diff(previous, activity_logger.snapshot(instance))
    activity_logger.log_updated(instance, changes, causer=causer)
    del instance._previous_snapshot


@receiver(post_delete, sender=Contact)
@receiver(post_delete, sender=Company)
def log_deleted(sender, instance, **kwargs):
    activity_logger.log_deleted(instance, causer=get_current_user())
