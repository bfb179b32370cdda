import re

from django.core.exceptions import ValidationError
from django.utils.translation import gettext as _, ngettext


class SecurePasswordValidator:
    """
    Password rules driven by the 'security' CRM settings

    password_min_length, password_require_uppercase,
    password_require_lowercase, password_require_numbers and
    password_require_special_chars are read on every validation so an
    admin change applies immediately.
    """

    def _rules(self):
        from apps.core.services import settings_service

        security = settings_service.get_security_settings()
        return {
            'min_length': int(security.get('password_min_length') or 8),
            'uppercase': bool(security.get('password_require_uppercase')),
            'lowercase': bool(security.get('password_require_lowercase')),
            'numbers': bool(security.get('password_require_numbers')),
            'special': bool(security.get('password_require_special_chars')),
        }

    def validate(self, password, user=None):
        rules = self._rules()
        errors = []

        if len(password) < rules['min_length']:
            errors.append(ValidationError(
                ngettext(
                    'The password must contain at least %(min_length)d character.',
                    'The password must contain at least %(min_length)d characters.',
                    rules['min_length'],
                ),
                code='password_too_short',
                params={'min_length': rules['min_length']},
            ))
        if rules['uppercase'] and not re.search(r'[A-Z]', password):
            errors.append(ValidationError(
                _('The password must contain at least one uppercase letter.'),
                code='password_no_upper',
            ))
        if rules['lowercase'] and not re.search(r'[a-z]', password):
            errors.append(ValidationError(
                _('The password must contain at least one lowercase letter.'),
                code='password_no_lower',
            ))
        if rules['numbers'] and not re.search(r'[0-9]', password):
            errors.append(ValidationError(
                _('The password must contain at least one number.'),
                code='password_no_number',
            ))
        if rules['special'] and not re.search(r'[^A-Za-z0-9]', password):
            errors.append(ValidationError(
                _('The password must contain at least one special character.'),
                code='password_no_special',
            ))

        if errors:
            raise ValidationError(errors)

    def get_help_text(self):
        rules = self._rules()
        parts = [_('at least %(min_length)d characters') % {'min_length': rules['min_length']}]
        if rules['uppercase']:
            parts.append(_('an uppercase letter'))
        if rules['lowercase']:
            parts.append(_('a lowercase letter'))
        if rules['numbers']:
            parts.append(_('a number'))
        if rules['special']:
            parts.append(_('a special character'))
        return _('Your password must contain: %(rules)s.') % {'rules': ', '.join(str(p) for p in parts)}
