import logging

from celery import shared_task
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils.translation import gettext as _, gettext_noop

from apps.core.services import settings_service
from apps.core.utils import clean_phone_number
from .forms import ContactImportRowForm
from .models import Contact, ContactImport, ContactImportFailure


logger = logging.getLogger(__name__)

MAX_RETRIES = 3

SUMMARY_MESSAGES = {
    ContactImport.STATUS_COMPLETED: gettext_noop('All contacts were imported successfully.'),
    ContactImport.STATUS_FAILED: gettext_noop('The import failed: no contact could be imported.'),
    ContactImport.STATUS_CANCELLED: gettext_noop('The import was cancelled before all rows were processed.'),
    ContactImport.STATUS_PARTIAL: gettext_noop('The import finished with errors: some rows were skipped.'),
}


def _count(batch_id, **counters):
    updates = {'processed_rows': F('processed_rows') + 1}
    updates.update({name: F(name) + 1 for name in counters})
    ContactImport.objects.filter(pk=batch_id).update(**updates)


def _record_failure(batch_id, row_number, data, errors):
    ContactImportFailure.objects.create(batch_id=batch_id, row_number=row_number, data=data, errors=errors)
    _count(batch_id, failed_rows=True)


@shared_task(bind=True, max_retries=MAX_RETRIES, default_retry_delay=10)
def import_contact_row(self, batch_id, row_number, data):
    """
    Validate and save one CSV row of a contact import

    Invalid rows are stored as ContactImportFailure. Database errors are
    retried, then stored as failures too. The last row closes the batch.
    """
    batch = ContactImport.objects.select_related('user').filter(pk=batch_id).first()
    if batch is None:
        logger.warning(f"Contact import {batch_id} no longer exists, row {row_number} dropped")
        return 'missing'

    if batch.cancelled:
        _count(batch_id)
        finish_import_if_complete(batch_id)
        return 'cancelled'

    data = dict(data)
    data['phone'] = clean_phone_number(data.get('phone')) or ''

    form = ContactImportRowForm(data)
    if not form.is_valid():
        errors = {field: [str(message) for message in messages] for field, messages in form.errors.items()}
        logger.warning(f"Contact import {batch_id}, row {row_number} skipped: {errors}")
        _record_failure(batch_id, row_number, data, errors)
        finish_import_if_complete(batch_id)
        return 'invalid'

    try:
        with transaction.atomic():
            Contact.objects.create(
                name=form.cleaned_data['name'],
                email=form.cleaned_data['email'],
                phone=form.cleaned_data['phone'] or None,
                address=form.cleaned_data['address'],
                user=batch.user,
            )
            _count(batch_id, imported_rows=True)
    except DatabaseError as exc:
        if self.request.retries < MAX_RETRIES:
            logger.warning(f"Contact import {batch_id}, row {row_number}: database error, retrying")
            raise self.retry(exc=exc)

        logger.error(f"Contact import {batch_id}, row {row_number} failed after {MAX_RETRIES} retries", exc_info=True)
        _record_failure(batch_id, row_number, data, {'database': [str(exc)]})

    finish_import_if_complete(batch_id)
    return 'imported'


def finish_import_if_complete(batch_id):
    """Close the batch once every row is processed and mail the summary. Runs once."""
    with transaction.atomic():
        batch = ContactImport.objects.select_for_update().select_related('user').get(pk=batch_id)
        if batch.is_finished or batch.processed_rows < batch.total_rows:
            return None
        batch.finish()

    logger.info(
        f"Contact import {batch.pk} finished: {batch.status} "
        f"({batch.imported_rows}/{batch.total_rows} imported)"
    )
    send_import_summary.delay(batch.pk)
    return batch


@shared_task
def send_import_summary(batch_id):
    batch = ContactImport.objects.select_related('user').filter(pk=batch_id).first()
    if batch is None or not batch.user.email:
        return False

    summary = _(SUMMARY_MESSAGES.get(batch.status, SUMMARY_MESSAGES[ContactImport.STATUS_COMPLETED]))
    body = '\n'.join([
        _('Hello %(name)s,') % {'name': batch.user.get_short_name()},
        '',
        summary,
        '',
        _('File: %(file)s') % {'file': batch.filename},
        _('Total rows: %(count)d') % {'count': batch.total_rows},
        _('Imported: %(count)d') % {'count': batch.imported_rows},
        _('Skipped: %(count)d') % {'count': batch.skipped_rows},
    ])

    try:
        send_mail(
            subject=_('Contact import: %(file)s') % {'file': batch.filename},
            message=body,
            from_email=settings_service.get_email_settings()['from_address'],
            recipient_list=[batch.user.email],
            connection=settings_service.get_mail_connection(),
        )
    except OSError:
        logger.error(f"Could not send the summary of contact import {batch.pk}", exc_info=True)
        return False

    logger.info(f"Summary of contact import {batch.pk} sent to {batch.user.email}")
    return True
