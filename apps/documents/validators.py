import json
import os

from django.core.exceptions import ValidationError
from django.utils.translation import gettext as _

from .models import DocumentLink


TAG_MAX_LENGTH = 30
ROLE_MAX_LENGTH = 50


def file_extension(filename):
    return os.path.splitext(filename or '')[1].lstrip('.').lower()


def allowed_extensions():
    from apps.core.services import settings_service

    value = settings_service.get_upload_settings()['allowed_extensions']
    if isinstance(value, str):
        value = value.split(',')
    return [str(extension).strip().lstrip('.').lower() for extension in value if str(extension).strip()]


def max_upload_size_mb():
    from apps.core.services import settings_service

    try:
        return float(settings_service.get_upload_settings()['max_file_size'] or 10)
    except (TypeError, ValueError):
        return 10.0


def validate_upload(uploaded_file):
    """Extension and size checks driven by the upload CRM settings."""
    extensions = allowed_extensions()
    extension = file_extension(uploaded_file.name)
    if extension not in extensions:
        raise ValidationError(
            _('The file type is not allowed. Allowed types: %(types)s.'),
            code='invalid_extension',
            params={'types': ', '.join(extensions)},
        )

    max_mb = max_upload_size_mb()
    if uploaded_file.size > max_mb * 1024 * 1024:
        raise ValidationError(
            _('The file may not be greater than %(size)s MB.'),
            code='file_too_large',
            params={'size': f'{max_mb:g}'},
        )


def validate_tags(tags):
    cleaned = []
    for tag in tags or []:
        tag = str(tag).strip()
        if not tag:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationError(
                _('Each tag may not be greater than %(max)d characters.'),
                code='tag_too_long',
                params={'max': TAG_MAX_LENGTH},
            )
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def parse_links(value):
    """
    Normalise links given as a list or as a JSON string

    Returns [{'type': 'company'|'contact', 'id': int, 'role': str}].
    """
    if value in (None, ''):
        return []

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(_('The links must be a valid JSON array.'), code='invalid_links')

    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        raise ValidationError(_('The links must be an array.'), code='invalid_links')

    links = []
    for index, link in enumerate(value):
        if not isinstance(link, dict):
            raise ValidationError(_('Link %(index)d must be an object.'), code='invalid_links', params={'index': index})
        links.append(validate_link(link.get('type'), link.get('id'), link.get('role')))
    return links


def validate_link(link_type, target_id, role=None):
    if link_type not in DocumentLink.TYPES:
        raise ValidationError(_('The link type must be company or contact.'), code='invalid_link_type')

    try:
        target_id = int(target_id)
    except (TypeError, ValueError):
        target_id = 0
    if target_id < 1:
        raise ValidationError(_('The link id must be a positive integer.'), code='invalid_link_id')

    role = (role or '').strip()
    if len(role) > ROLE_MAX_LENGTH:
        raise ValidationError(
            _('The link role may not be greater than %(max)d characters.'),
            code='role_too_long',
            params={'max': ROLE_MAX_LENGTH},
        )
    return {'type': link_type, 'id': target_id, 'role': role}
