"""
CSV contact import: file parsing and batch creation

The rows themselves are validated and saved by apps.contacts.tasks.
"""

import csv
import logging
from io import TextIOWrapper

from django.db import transaction

from .models import ContactImport


logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ('name', 'email', 'phone', 'address')


def read_csv_rows(uploaded_file):
    """
    Rows of the uploaded CSV as dicts keyed by lower-cased, stripped headers

    Blank lines are dropped. Row numbers start at 2 (row 1 is the header).
    Raises UnicodeDecodeError or csv.Error on unreadable files.
    """
    uploaded_file.seek(0)
    data = TextIOWrapper(uploaded_file.file, encoding='utf-8-sig', newline='')
    try:
        reader = csv.reader(data)
        headers = next(reader, None)
        if not headers:
            return []

        headers = [header.strip().lower() for header in headers]
        rows = []
        for row_number, values in enumerate(reader, start=2):
            if not any(value.strip() for value in values):
                continue
            row = {header: (values[index].strip() if index < len(values) else '') for index, header in enumerate(headers) if header}
            rows.append((row_number, row))
        return rows
    finally:
        data.detach()


def start_import(user, uploaded_file, rows=None):
    """
    Create a ContactImport batch for the file and queue one task per row

    Tasks are queued once the batch row is committed.
    """
    from .tasks import import_contact_row

    if rows is None:
        rows = read_csv_rows(uploaded_file)

    batch = ContactImport.objects.create(
        user=user,
        filename=uploaded_file.name,
        total_rows=len(rows),
        status=ContactImport.STATUS_PENDING if rows else ContactImport.STATUS_PROCESSING,
    )
    logger.info(f"Contact import {batch.pk} created by {user.email}: {len(rows)} rows")

    if not rows:
        batch.finish()
        return batch

    def dispatch():
        ContactImport.objects.filter(pk=batch.pk, status=ContactImport.STATUS_PENDING).update(
            status=ContactImport.STATUS_PROCESSING
        )
        for row_number, row in rows:
            payload = {column: row.get(column, '') for column in IMPORT_COLUMNS}
            import_contact_row.delay(batch.pk, row_number, payload)

    transaction.on_commit(dispatch)
    return batch


def cancel_import(batch):
    """Flag the batch: rows not yet processed are skipped."""
    if batch.is_finished:
        return False
    ContactImport.objects.filter(pk=batch.pk).update(cancelled=True)
    batch.cancelled = True
    logger.info(f"Contact import {batch.pk} cancelled")
    return True
