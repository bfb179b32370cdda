"""
Who may see and change contacts and companies

Plain boolean functions, shared by the HTML views (decorators / checks),
the DRF permissions and the querysets used for listings.
"""


# COMPANIES

def can_view_company(user, company):
    if user.is_admin() or user.has_crm_perm('view all companies'):
        return True
    return company.owner_id == user.id


def can_update_company(user, company):
    if user.is_admin() or company.owner_id == user.id:
        return True
    return user.has_crm_perm('edit companies') and user.has_crm_perm('view all companies')


def can_delete_company(user, company):
    if user.is_admin() or company.owner_id == user.id:
        return True
    return user.has_crm_perm('delete companies')


def visible_companies(user, queryset):
    """Every user may list companies."""
    return queryset


# CONTACTS

def can_view_any_contact(user):
    return (
        user.is_admin()
        or user.has_crm_perm('view all contacts')
        or user.has_crm_perm('view contacts')
        or user.has_crm_perm('view own contacts')
    )


def _linked_company_visible(user, contact):
    if contact.company_id is None:
        return False
    return can_view_company(user, contact.company)


def can_view_contact(user, contact):
    if user.is_admin() or user.has_crm_perm('view all contacts'):
        return True

    if user.has_crm_perm('view own contacts') and contact.user_id == user.id:
        return True

    if user.has_crm_perm('view contacts') and _linked_company_visible(user, contact):
        return True

    return False


def can_create_contact(user):
    return user.is_admin() or user.has_crm_perm('create contacts')


def can_update_contact(user, contact):
    if user.is_admin():
        return True

    if user.has_crm_perm('edit contacts'):
        if contact.user_id == user.id or user.has_crm_perm('view all contacts'):
            return True
        return _linked_company_visible(user, contact)

    return False


def can_delete_contact(user, contact):
    if user.is_admin():
        return True

    if user.has_crm_perm('delete contacts'):
        if contact.user_id == user.id or user.has_crm_perm('view all contacts'):
            return True
        return _linked_company_visible(user, contact)

    return False


def visible_contacts(user, queryset):
    """Restrict a Contact queryset to what the user may list."""
    if user.is_admin() or user.has_crm_perm('view all contacts'):
        return queryset
    return queryset.filter(user=user)
