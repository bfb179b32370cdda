#!/usr/bin/env python
# ==============================================================================
# CRM CATALYST - DJANGO MANAGEMENT SCRIPT
# ==============================================================================
#
# Common commands:
# - python manage.py runserver              # Start development server
# - python manage.py migrate                # Apply migrations (also seeds CRM settings)
# - python manage.py seed_crm_settings      # Restore missing default CRM settings
# - python manage.py createsuperuser        # Create admin user
# - python manage.py test                   # Run tests
#
# Background worker:
# - celery -A config worker -l info
# - celery -A config beat -l info
# ==============================================================================

import os
import sys


def main():
    """Run administrative tasks."""

    # Points to config/settings.py
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


# Entry point
# This runs when you execute: python manage.py [command]
if __name__ == '__main__':
    main()
