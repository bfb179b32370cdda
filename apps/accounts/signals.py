import logging

from django.db.models.signals import post_save, pre_delete
from django.dispatch import receiver
from django.contrib.auth import get_user_model

from .models import UserProfile


logger = logging.getLogger(__name__)

User = get_user_model()


# SIGNAL 1: AUTO-CREATE USER PROFILE
@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    if created:
        UserProfile.objects.get_or_create(user=instance)
        logger.debug("Profile created for user: %s", instance.email)


# SIGNAL 2: CLEANUP ON USER DELETION
@receiver(pre_delete, sender=User)
def delete_user_cleanup(sender, instance, **kwargs):
    # Delete avatar file from storage (if exists)
    if instance.avatar:
        try:
            instance.avatar.delete(save=False)
        except OSError:
            logger.warning("Could not delete avatar for user %s", instance.email, exc_info=True)

    logger.info("User deleted: %s (%s)", instance.email, instance.get_full_name())
