import logging
from contextvars import ContextVar

from django.db import DatabaseError


logger = logging.getLogger(__name__)

_current_user = ContextVar('current_user', default=None)


def get_current_user():
    """User of the request being served, None outside a request (tasks, shell)."""
    return _current_user.get()


class CurrentUserMiddleware:
    """Expose request.user to model signals (activity log causer)."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        token = _current_user.set(user if user is not None and user.is_authenticated else None)
        try:
            return self.get_response(request)
        finally:
            _current_user.reset(token)


class SecuritySettingsMiddleware:
    """
    Apply the 'session_lifetime' CRM setting (minutes) to authenticated sessions

    Sessions opened with "remember me" keep their own expiry.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated and not request.session.get('remember'):
            self._apply_session_lifetime(request)
        return self.get_response(request)

    def _apply_session_lifetime(self, request):
        from .services import settings_service

        try:
            minutes = int(settings_service.get('session_lifetime', 120) or 0)
        except (TypeError, ValueError, DatabaseError):
            logger.warning("Could not apply security settings", exc_info=True)
            return

        if minutes > 0 and request.session.get('_session_expiry') != minutes * 60:
            request.session.set_expiry(minutes * 60)
