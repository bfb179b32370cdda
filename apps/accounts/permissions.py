"""
Role based CRM permissions

Each user has exactly one role. A role grants a fixed set of named
permissions, checked with ``user.has_crm_perm('view all contacts')``.
"""

from django.utils.translation import gettext_lazy as _


ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_SALES = 'sales'

ROLE_CHOICES = [
    (ROLE_ADMIN, _('Administrator')),
    (ROLE_MANAGER, _('Manager')),
    (ROLE_SALES, _('Sales')),
]


ALL_PERMISSIONS = [
    # CRM settings
    'view crm settings',
    'manage crm settings',

    # Dashboard
    'view dashboard',
    'view all stats',

    # Contacts
    'view contacts',
    'view all contacts',
    'view own contacts',
    'create contacts',
    'edit contacts',
    'delete contacts',
    'import contacts',
    'export contacts',

    # Companies
    'view companies',
    'view all companies',
    'create companies',
    'edit companies',
    'delete companies',

    # Opportunities
    'view opportunities',
    'view all opportunities',
    'create opportunities',
    'edit opportunities',
    'delete opportunities',
    'change opportunity stage',
    'import opportunities',
    'export opportunities',

    # Documents
    'view documents',
    'view all documents',
    'view own documents',
    'upload documents',
    'edit documents',
    'delete documents',
    'download documents',

    # Calendar
    'view calendar',
    'manage calendar events',

    # Users
    'view users',
    'create users',
    'edit users',
    'delete users',
    'assign roles',
]


ROLE_PERMISSIONS = {
    ROLE_ADMIN: frozenset(ALL_PERMISSIONS),

    ROLE_MANAGER: frozenset([
        'view dashboard',
        'view all stats',
        'view contacts',
        'view all contacts',
        'view own contacts',
        'create contacts',
        'edit contacts',
        'delete contacts',
        'import contacts',
        'export contacts',
        'view companies',
        'view all companies',
        'create companies',
        'edit companies',
        'view opportunities',
        'view all opportunities',
        'create opportunities',
        'edit opportunities',
        'change opportunity stage',
        'import opportunities',
        'export opportunities',
        'view documents',
        'view all documents',
        'view own documents',
        'upload documents',
        'edit documents',
        'download documents',
        'view calendar',
        'manage calendar events',
    ]),

    ROLE_SALES: frozenset([
        'view dashboard',
        'view own contacts',
        'create contacts',
        'edit contacts',
        'import contacts',
        'view companies',
        'create companies',
        'edit companies',
        'view opportunities',
        'create opportunities',
        'edit opportunities',
        'change opportunity stage',
        'export opportunities',
        'view own documents',
        'upload documents',
        'edit documents',
        'download documents',
        'view calendar',
        'manage calendar events',
    ]),
}


def role_has_permission(role, permission):
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def permissions_for_role(role):
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()))
