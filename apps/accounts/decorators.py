"""
Access decorators for function based views

All of them redirect anonymous users to the login page.
AJAX callers (X-Requested-With: XMLHttpRequest) or JSON callers get a
JSON 403 instead of a redirect.
"""

from functools import wraps
from django.shortcuts import redirect
from django.contrib import messages
from django.http import HttpResponseForbidden, JsonResponse
from django.utils.translation import gettext_lazy as _


def is_ajax(request):
    return (
        request.headers.get('X-Requested-With') == 'XMLHttpRequest'
        or 'application/json' in request.headers.get('Accept', '')
    )


def deny(request, message):
    if is_ajax(request):
        return JsonResponse({
            'success': False,
            'error': str(message)
        }, status=403)

    messages.error(request, message)
    return redirect('core:dashboard')


def admin_required(view_func):
    """
    Decorator: Only admins can access this view

    Checks:
    1. User is authenticated (logged in)
    2. User role is 'admin' OR is superuser
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            messages.error(request, _('Please login to continue.'))
            return redirect('accounts:login')

        if request.user.is_admin():
            return view_func(request, *args, **kwargs)

        return deny(request, _('You do not have permission to access this page. Admin access required.'))
    return wrapper


def role_required(*allowed_roles):
    """
    Decorator: Only specific roles can access

    Usage:
        @login_required
        @role_required('admin', 'manager')
        def team_report(request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                messages.error(request, _('Please login to continue.'))
                return redirect('accounts:login')

            if request.user.role in allowed_roles or request.user.is_superuser:
                return view_func(request, *args, **kwargs)

            return deny(request, _('You do not have permission to access this page.'))
        return wrapper
    return decorator


def permission_required(*permissions):
    """
    Decorator: Check CRM role permissions (see permissions.py)

    Usage:
        @login_required
        @permission_required('import contacts')
        def contact_import(request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                messages.error(request, _('Please login to continue.'))
                return redirect('accounts:login')

            if all(request.user.has_crm_perm(perm) for perm in permissions):
                return view_func(request, *args, **kwargs)

            return deny(request, _('You do not have permission to perform this action.'))
        return wrapper
    return decorator


def ajax_required(view_func):
    """
    Decorator: Only AJAX requests allowed

    Detects AJAX through the X-Requested-With header.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if request.headers.get('X-Requested-With') == 'XMLHttpRequest':
            return view_func(request, *args, **kwargs)
        return HttpResponseForbidden('AJAX requests only')
    return wrapper
