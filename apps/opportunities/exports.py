"""
Opportunity CSV / Excel export and CSV import

CSV files use ';' as delimiter and start with a UTF-8 BOM so Excel
opens them with the right encoding. The import reads the same columns
as the export.
"""

import csv
import logging
from io import TextIOWrapper

import openpyxl
from openpyxl.styles import Font, PatternFill
from django.db import DatabaseError, transaction
from django.http import HttpResponse
from django.utils import timezone

from apps.contacts.models import Company
from .forms import OpportunityImportRowForm
from .models import Opportunity, OpportunityActivity, OpportunityStage


logger = logging.getLogger(__name__)

CSV_DELIMITER = ';'

EXPORT_HEADERS = [
    'ID', 'Name', 'Stage', 'Amount', 'Probability', 'Expected close date',
    'Contact', 'Company', 'Contact email', 'Contact phone', 'Owner',
    'Description', 'Source', 'Created', 'Updated',
]

TEMPLATE_EXAMPLE_ROW = [
    '', 'Website redesign', 'qualification', '10000', '25', '2025-12-31',
    'Alice Martin', 'Acme', 'alice@example.com', '0612345678', '',
    'Redesign of the corporate website', 'website', '', '',
]

# Column index in EXPORT_HEADERS -> import field
IMPORT_COLUMNS = {
    1: 'name',
    2: 'stage',
    3: 'amount',
    4: 'probability',
    5: 'expected_close_date',
    7: 'company',
    8: 'contact_email',
    11: 'description',
    12: 'lead_source',
}


def export_row(opportunity):
    contact = opportunity.contact
    return [
        opportunity.pk,
        opportunity.name,
        opportunity.stage,
        str(opportunity.amount),
        opportunity.probability,
        opportunity.expected_close_date.strftime('%Y-%m-%d') if opportunity.expected_close_date else '',
        contact.name if contact else '',
        opportunity.company.name if opportunity.company else '',
        (contact.email or '') if contact else '',
        (contact.phone or '') if contact else '',
        opportunity.owner.get_full_name() if opportunity.owner else '',
        opportunity.description,
        opportunity.lead_source,
        timezone.localtime(opportunity.created_at).strftime('%Y-%m-%d %H:%M'),
        timezone.localtime(opportunity.updated_at).strftime('%Y-%m-%d %H:%M'),
    ]


def _filename(extension):
    return f'opportunities_{timezone.now().strftime("%Y%m%d_%H%M%S")}.{extension}'


def csv_response(rows, filename):
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    # BOM for Excel UTF-8 compatibility
    response.write('\ufeff')

    writer = csv.writer(response, delimiter=CSV_DELIMITER)
    for row in rows:
        writer.writerow(row)
    return response


def export_csv(opportunities):
    rows = [EXPORT_HEADERS] + [export_row(opportunity) for opportunity in opportunities]
    return csv_response(rows, _filename('csv'))


def export_xlsx(opportunities):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Opportunities"

    for col, header in enumerate(EXPORT_HEADERS, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="0D9488", end_color="0D9488", fill_type="solid")

    for row_number, opportunity in enumerate(opportunities, start=2):
        for col, value in enumerate(export_row(opportunity), start=1):
            ws.cell(row=row_number, column=col, value=value)

    for column_cells in ws.columns:
        max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 50)

    response = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
    response['Content-Disposition'] = f'attachment; filename="{_filename("xlsx")}"'
    wb.save(response)
    return response


def import_template():
    return csv_response([EXPORT_HEADERS, TEMPLATE_EXAMPLE_ROW], 'template_opportunities.csv')


def _row_payload(row):
    payload = {}
    for index, field in IMPORT_COLUMNS.items():
        value = row[index].strip() if index < len(row) and row[index] else ''
        if field == 'amount':
            value = value.replace(' ', '').replace(',', '.')
        payload[field] = value
    return payload


def read_import_rows(uploaded_file):
    """Data rows of an import CSV, header dropped. Raises UnicodeDecodeError or csv.Error."""
    uploaded_file.seek(0)
    data = TextIOWrapper(uploaded_file.file, encoding='utf-8-sig', newline='')
    try:
        reader = csv.reader(data, delimiter=CSV_DELIMITER)
        next(reader, None)
        return list(reader)
    finally:
        data.detach()


def import_opportunities(user, rows):
    """
    Create opportunities from CSV rows laid out like the export

    Rows without a name are skipped. Contacts are matched by email and
    companies by name (falling back to the contact's company).
    Returns {'success': n, 'skipped': n, 'errors': ['Row 3: ...']}.
    """
    results = {'success': 0, 'skipped': 0, 'errors': []}

    for row_number, row in enumerate(rows, start=2):
        payload = _row_payload(row)
        if not payload['name']:
            results['skipped'] += 1
            continue

        form = OpportunityImportRowForm(payload)
        if not form.is_valid():
            messages = [str(message) for errors in form.errors.values() for message in errors]
            results['errors'].append(f"Row {row_number}: {' '.join(messages)}")
            logger.warning(f"Opportunity import row {row_number} rejected: {form.errors.as_json()}")
            continue

        data = form.cleaned_data
        contact = data['contact']
        company = None
        if payload['company']:
            company = Company.objects.filter(name__iexact=payload['company']).first()
        if company is None:
            company = contact.company

        stage = data.get('stage') or OpportunityStage.NOUVEAU
        probability = data.get('probability')

        try:
            with transaction.atomic():
                opportunity = Opportunity.objects.create(
                    name=data['name'],
                    description=data.get('description') or '',
                    contact=contact,
                    company=company,
                    owner=user,
                    amount=data.get('amount') or 0,
                    probability=probability if probability is not None else OpportunityStage.probability_for(stage),
                    stage=stage,
                    expected_close_date=data['expected_close_date'],
                    lead_source=data.get('lead_source') or 'import',
                )
                opportunity.activities.create(
                    user=user,
                    type=OpportunityActivity.TYPE_CREATED,
                    title='Opportunity imported',
                )
        except DatabaseError as exc:
            logger.error(f"Opportunity import row {row_number} failed", exc_info=True)
            results['errors'].append(f"Row {row_number}: {exc}")
            continue

        results['success'] += 1

    logger.info(
        f"Opportunity import by {user.email}: {results['success']} created, "
        f"{results['skipped']} skipped, {len(results['errors'])} errors"
    )
    return results
