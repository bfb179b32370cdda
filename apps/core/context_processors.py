import logging

from django.db import DatabaseError

from .services import settings_service
from .utils import hex_to_hsl


logger = logging.getLogger(__name__)


def crm_settings(request):
    """
    Public CRM settings and branding for every template

    {{ crm.company_name }}, {{ branding.primary_color }},
    {{ branding.primary_hsl }} ...
    """
    try:
        values = settings_service.all()
    except DatabaseError:
        # Tables not migrated yet
        logger.warning("CRM settings unavailable", exc_info=True)
        values = {}

    branding = {
        'company_logo_url': values.get('company_logo_url') or values.get('company_logo') or '',
        'primary_color': values.get('primary_color') or '#0d9488',
        'secondary_color': values.get('secondary_color') or '#64748b',
    }
    branding['primary_hsl'] = hex_to_hsl(branding['primary_color'])
    branding['secondary_hsl'] = hex_to_hsl(branding['secondary_color'])

    return {
        'crm': {
            'company_name': values.get('company_name') or 'CRM Catalyst',
            'default_currency': values.get('default_currency') or 'EUR',
            'date_format': values.get('date_format') or 'd/m/Y',
        },
        'branding': branding,
    }
