"""
DRF permission class backed by the document policies
"""

from rest_framework.permissions import BasePermission

from . import policies


class DocumentPolicy(BasePermission):
    message = 'You do not have permission to access this document.'

    UPDATE_ACTIONS = ('update', 'partial_update', 'links')

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if view.action == 'create':
            return policies.can_upload_document(user)
        return policies.can_view_any_document(user)

    def has_object_permission(self, request, view, obj):
        user = request.user
        if view.action == 'destroy':
            return policies.can_delete_document(user, obj)
        if view.action in self.UPDATE_ACTIONS:
            return policies.can_update_document(user, obj)
        if view.action == 'versions' and request.method == 'POST':
            return policies.can_update_document(user, obj)
        if view.action in ('download', 'preview'):
            return policies.can_download_document(user, obj)
        return policies.can_view_document(user, obj)
