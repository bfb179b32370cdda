"""
Default CRM settings

Seeded by migration 0002, by `manage.py seed_crm_settings` and restored
by the settings reset endpoint.
"""

DEFAULT_SETTINGS = [
    # Upload
    {'key': 'upload_allowed_extensions', 'value': ['pdf', 'doc', 'docx', 'xls', 'xlsx', 'jpg', 'jpeg', 'png', 'gif', 'txt', 'csv', 'zip'],
     'category': 'upload', 'description': 'Allowed file extensions for uploads', 'is_public': False},
    {'key': 'upload_max_file_size', 'value': 10,
     'category': 'upload', 'description': 'Maximum file size in MB', 'is_public': True},
    {'key': 'upload_storage_path', 'value': 'documents',
     'category': 'upload', 'description': 'Document storage folder', 'is_public': False},

    # Identity
    {'key': 'company_name', 'value': 'CRM Catalyst',
     'category': 'identity', 'description': 'Company name', 'is_public': True},
    {'key': 'company_logo', 'value': '',
     'category': 'identity', 'description': 'Company logo URL', 'is_public': True},
    {'key': 'company_email', 'value': 'contact@example.com',
     'category': 'identity', 'description': 'Main company email', 'is_public': True},
    {'key': 'company_phone', 'value': '+33 1 23 45 67 89',
     'category': 'identity', 'description': 'Main company phone', 'is_public': True},
    {'key': 'company_address', 'value': '123 Rue de la Paix',
     'category': 'identity', 'description': 'Company address', 'is_public': True},
    {'key': 'company_city', 'value': 'Paris',
     'category': 'identity', 'description': 'Company city', 'is_public': True},
    {'key': 'company_postal_code', 'value': '75001',
     'category': 'identity', 'description': 'Company postal code', 'is_public': True},
    {'key': 'company_country', 'value': 'France',
     'category': 'identity', 'description': 'Company country', 'is_public': True},

    # Email
    {'key': 'smtp_host', 'value': 'smtp.gmail.com',
     'category': 'email', 'description': 'SMTP server', 'is_public': False},
    {'key': 'smtp_port', 'value': 587,
     'category': 'email', 'description': 'SMTP port', 'is_public': False},
    {'key': 'smtp_username', 'value': '',
     'category': 'email', 'description': 'SMTP username', 'is_public': False},
    {'key': 'smtp_password', 'value': '',
     'category': 'email', 'description': 'SMTP password', 'is_public': False},
    {'key': 'smtp_encryption', 'value': 'tls',
     'category': 'email', 'description': 'SMTP encryption (tls, ssl or empty)', 'is_public': False},
    {'key': 'mail_from_address', 'value': 'noreply@example.com',
     'category': 'email', 'description': 'Sender address', 'is_public': False},
    {'key': 'mail_from_name', 'value': 'CRM Catalyst',
     'category': 'email', 'description': 'Sender name', 'is_public': False},

    # Security
    {'key': 'session_lifetime', 'value': 120,
     'category': 'security', 'description': 'Session lifetime in minutes', 'is_public': False},
    {'key': 'password_min_length', 'value': 8,
     'category': 'security', 'description': 'Minimum password length', 'is_public': True},
    {'key': 'password_require_uppercase', 'value': True,
     'category': 'security', 'description': 'Passwords need an uppercase letter', 'is_public': True},
    {'key': 'password_require_lowercase', 'value': True,
     'category': 'security', 'description': 'Passwords need a lowercase letter', 'is_public': True},
    {'key': 'password_require_numbers', 'value': True,
     'category': 'security', 'description': 'Passwords need a number', 'is_public': True},
    {'key': 'password_require_special_chars', 'value': False,
     'category': 'security', 'description': 'Passwords need a special character', 'is_public': True},
    {'key': 'two_factor_enabled', 'value': False,
     'category': 'security', 'description': 'Two factor authentication', 'is_public': False},

    # General
    {'key': 'default_currency', 'value': 'EUR',
     'category': 'general', 'description': 'Default currency', 'is_public': True},
    {'key': 'timezone', 'value': 'Europe/Paris',
     'category': 'general', 'description': 'Time zone', 'is_public': True},
    {'key': 'language', 'value': 'fr',
     'category': 'general', 'description': 'Default language', 'is_public': True},
    {'key': 'date_format', 'value': 'd/m/Y',
     'category': 'general', 'description': 'Date format', 'is_public': True},
    {'key': 'time_format', 'value': 'H:i',
     'category': 'general', 'description': 'Time format', 'is_public': True},

    # Sales
    {'key': 'default_pipeline', 'value': 'default',
     'category': 'sales', 'description': 'Default pipeline', 'is_public': False},
    {'key': 'lead_sources', 'value': ['Website', 'Email', 'Phone', 'Social Media', 'Referral', 'Other'],
     'category': 'sales', 'description': 'Lead sources', 'is_public': False},
    {'key': 'opportunity_stages', 'value': ['Prospecting', 'Qualification', 'Proposal', 'Negotiation', 'Closed Won', 'Closed Lost'],
     'category': 'sales', 'description': 'Opportunity stage names', 'is_public': False},

    # System
    {'key': 'data_retention_days', 'value': 365,
     'category': 'system', 'description': 'Days to keep activity logs', 'is_public': False},

    # Branding
    {'key': 'primary_color', 'value': '#3B82F6',
     'category': 'branding', 'description': 'Primary colour', 'is_public': True},
    {'key': 'secondary_color', 'value': '#10B981',
     'category': 'branding', 'description': 'Secondary colour', 'is_public': True},
    {'key': 'company_logo_url', 'value': '',
     'category': 'branding', 'description': 'Logo shown in the navigation bar', 'is_public': True},
]


def seed_settings(model, overwrite=False):
    """
    Insert the default settings into `model` (CrmSetting or its historical
    version inside a migration). Existing keys are kept unless overwrite.

    Returns the number of rows created or reset.
    """
    count = 0
    for item in DEFAULT_SETTINGS:
        defaults = {
            'value': item['value'],
            'category': item['category'],
            'description': item['description'],
            'is_public': item['is_public'],
        }
        if overwrite:
            model.objects.update_or_create(key=item['key'], defaults=defaults)
            count += 1
        else:
            _, created = model.objects.get_or_create(key=item['key'], defaults=defaults)
            count += int(created)
    return count
