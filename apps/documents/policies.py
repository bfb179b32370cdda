"""
Who may see and change documents

Team and company visibility are stored but do not widen access yet:
outside 'view all documents', a document belongs to its owner only.
"""


def can_view_any_document(user):
    return (
        user.is_admin()
        or user.has_crm_perm('view all documents')
        or user.has_crm_perm('view own documents')
        or user.has_crm_perm('edit documents')
    )


def sees_all_documents(user):
    return user.is_admin() or user.has_crm_perm('view all documents')


def can_upload_document(user):
    return user.is_admin() or user.has_crm_perm('upload documents')


def can_view_document(user, document):
    if sees_all_documents(user):
        return True
    if document.owner_id != user.id:
        return False
    return user.has_crm_perm('view own documents') or user.has_crm_perm('edit documents')


def can_download_document(user, document):
    if not can_view_document(user, document):
        return False
    return user.is_admin() or user.has_crm_perm('download documents') or document.owner_id == user.id


def can_update_document(user, document):
    if user.is_admin():
        return True
    return user.has_crm_perm('edit documents') and document.owner_id == user.id


def can_delete_document(user, document):
    if user.is_admin():
        return True
    if document.owner_id != user.id:
        return False
    return user.has_crm_perm('delete documents') or user.has_crm_perm('edit documents')


def visible_documents(user, queryset):
    if sees_all_documents(user):
        return queryset
    return queryset.filter(owner=user)
