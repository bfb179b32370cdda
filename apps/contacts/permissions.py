"""
DRF permission classes backed by the contact/company policies
"""

from rest_framework.permissions import BasePermission, SAFE_METHODS

from . import policies


class ContactPolicy(BasePermission):
    message = 'You do not have permission to access this contact.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if view.action == 'create':
            return policies.can_create_contact(user)
        return policies.can_view_any_contact(user)

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return policies.can_view_contact(request.user, obj)
        if request.method == 'DELETE':
            return policies.can_delete_contact(request.user, obj)
        return policies.can_update_contact(request.user, obj)


class CompanyPolicy(BasePermission):
    message = 'You do not have permission to access this company.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if view.action == 'create':
            return user.is_admin() or user.has_crm_perm('create companies')
        return True

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return policies.can_view_company(request.user, obj)
        if request.method == 'DELETE':
            return policies.can_delete_company(request.user, obj)
        return policies.can_update_company(request.user, obj)
