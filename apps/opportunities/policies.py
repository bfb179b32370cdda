"""
Who may see and change opportunities

Admins and users with 'view all opportunities' work on the whole
pipeline, everybody else on the opportunities they own.
"""


def can_view_any_opportunity(user):
    return user.is_admin() or user.has_crm_perm('view opportunities')


def sees_all_opportunities(user):
    return user.is_admin() or user.has_crm_perm('view all opportunities')


def can_view_opportunity(user, opportunity):
    if sees_all_opportunities(user):
        return True
    return user.has_crm_perm('view opportunities') and opportunity.owner_id == user.id


def can_create_opportunity(user):
    return user.is_admin() or user.has_crm_perm('create opportunities')


def can_update_opportunity(user, opportunity):
    if not (user.is_admin() or user.has_crm_perm('edit opportunities')):
        return False
    return sees_all_opportunities(user) or opportunity.owner_id == user.id


def can_change_stage(user, opportunity):
    if not (user.is_admin() or user.has_crm_perm('change opportunity stage')):
        return False
    return sees_all_opportunities(user) or opportunity.owner_id == user.id


def can_delete_opportunity(user, opportunity):
    if user.is_admin():
        return True
    if not user.has_crm_perm('delete opportunities'):
        return False
    return sees_all_opportunities(user) or opportunity.owner_id == user.id


def visible_opportunities(user, queryset):
    if sees_all_opportunities(user):
        return queryset
    return queryset.filter(owner=user)
