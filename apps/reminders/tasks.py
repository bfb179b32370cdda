import logging

from celery import shared_task
from django.core.mail import EmailMessage, send_mail
from django.utils import timezone
from django.utils.translation import gettext as _

from apps.core.services import settings_service, activity_logger
from .models import Reminder, EmailTemplate


logger = logging.getLogger(__name__)

MAX_RETRIES = 3


def _wants_email(user):
    profile = getattr(user, 'profile', None)
    return bool(user.email) and user.is_active and (profile is None or profile.email_notifications)


@shared_task
def send_due_reminders():
    """
    Mail users about pending reminders that just became due

    Scheduled in config/celery.py. Each reminder is mailed once:
    notified_at is stamped even when the user opted out of emails.
    """
    sent = 0
    due = Reminder.objects.due_for_notification().select_related('user', 'user__profile', 'opportunity', 'contact')
    connection = settings_service.get_mail_connection()

    for reminder in due:
        user = reminder.user
        if _wants_email(user):
            lines = [
                _('Hello %(name)s,') % {'name': user.get_short_name()},
                '',
                _('Reminder: %(title)s') % {'title': reminder.title},
                _('Due: %(date)s') % {'date': timezone.localtime(reminder.reminder_date).strftime('%d/%m/%Y %H:%M')},
            ]
            if reminder.opportunity_id:
                lines.append(_('Opportunity: %(name)s') % {'name': reminder.opportunity.name})
            if reminder.contact_id:
                lines.append(_('Contact: %(name)s') % {'name': reminder.contact.name})
            if reminder.description:
                lines += ['', reminder.description]

            try:
                send_mail(
                    subject=_('Reminder: %(title)s') % {'title': reminder.title},
                    message='\n'.join(lines),
                    from_email=settings_service.get_email_settings()['from_address'],
                    recipient_list=[user.email],
                    connection=connection,
                )
            except OSError:
                logger.error(f"Could not mail reminder {reminder.pk} to {user.email}", exc_info=True)
                continue
            sent += 1

        Reminder.objects.filter(pk=reminder.pk).update(notified_at=timezone.now())

    if sent:
        logger.info(f"{sent} reminder email(s) sent")
    return sent


@shared_task(bind=True, max_retries=MAX_RETRIES, default_retry_delay=30)
def send_template_email(self, template_id, user_id, to, subject, body, cc=None, bcc=None,
                        contact_id=None, opportunity_id=None):
    """
    Send an email built from a template and count the use

    SMTP errors are retried. The contact / opportunity gets an
    'Email sent' activity log entry.
    """
    template = EmailTemplate.objects.select_related('user').filter(pk=template_id).first()
    if template is None:
        logger.warning(f"Email template {template_id} no longer exists, email to {to} dropped")
        return False

    from apps.accounts.models import User
    sender = User.objects.select_related('profile').filter(pk=user_id).first()

    signature = getattr(getattr(sender, 'profile', None), 'signature', '')
    if signature:
        body = f"{body}\n\n{signature}"

    message = EmailMessage(
        subject=subject,
        body=body,
        from_email=settings_service.get_email_settings()['from_address'],
        to=[to],
        cc=cc or [],
        bcc=bcc or [],
        reply_to=[sender.email] if sender else None,
        connection=settings_service.get_mail_connection(),
    )
    if '<' in body and '>' in body:
        message.content_subtype = 'html'

    try:
        message.send()
    except OSError as exc:
        if self.request.retries < MAX_RETRIES:
            logger.warning(f"Email from template {template_id} to {to} failed, retrying")
            raise self.retry(exc=exc)
        logger.error(f"Email from template {template_id} to {to} failed after {MAX_RETRIES} retries", exc_info=True)
        return False

    template.increment_usage()
    _log_email_sent(template, sender, subject, contact_id, opportunity_id)

    logger.info(f"Email from template {template_id} sent to {to}")
    return True


def _log_email_sent(template, sender, subject, contact_id, opportunity_id):
    from apps.contacts.models import Contact
    from apps.opportunities.models import Opportunity

    properties = {'template_id': template.pk, 'subject': subject}
    for model, pk in ((Contact, contact_id), (Opportunity, opportunity_id)):
        if not pk:
            continue
        subject_instance = model.objects.filter(pk=pk).first()
        if subject_instance is not None:
            activity_logger.log('Email sent', subject=subject_instance, causer=sender,
                                properties=properties, log_name='email')
