from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html

from .models import User, UserProfile
from .permissions import ROLE_ADMIN, ROLE_MANAGER


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    verbose_name = _('User Profile')
    verbose_name_plural = _('User Profile')
    fk_name = "user"
    extra = 0
    max_num = 1
    fields = ('email_notifications', 'language', 'theme', 'signature')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        'email',
        'get_full_name_display',
        'role_badge',
        'is_active_badge',
        'login_count',
        'date_joined',
    )
    list_display_links = ('email', 'get_full_name_display')
    list_filter = ('role', 'is_active', 'is_staff', 'is_superuser', 'date_joined')
    search_fields = ('email', 'first_name', 'last_name', 'phone')
    ordering = ('-date_joined',)
    list_per_page = 25
    list_select_related = ('profile',)

    fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'phone', 'avatar', 'job_title'),
            'classes': ('wide',),
        }),
        (_('Role'), {
            'fields': ('role',),
            'description': _('admin, manager or sales'),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser'),
            'classes': ('collapse',),
        }),
        (_('Activity Tracking'), {
            'fields': ('login_count', 'last_login_ip', 'date_joined', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password1', 'password2'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'phone'),
            'classes': ('wide',),
        }),
        (_('Role'), {
            'fields': ('role',),
        }),
    )

    readonly_fields = ('date_joined', 'last_login', 'login_count', 'last_login_ip')
    inlines = [UserProfileInline]
    actions = ['activate_users', 'deactivate_users']

    def get_full_name_display(self, obj):
        return obj.get_full_name()
    get_full_name_display.short_description = _('Full Name')
    get_full_name_display.admin_order_field = 'first_name'

    def role_badge(self, obj):
        colors = {ROLE_ADMIN: '#28a745', ROLE_MANAGER: '#6f42c1'}
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            colors.get(obj.role, '#007bff'), obj.get_role_display()
        )
    role_badge.short_description = _('Role')
    role_badge.admin_order_field = 'role'

    def is_active_badge(self, obj):
        if obj.is_active:
            return format_html(
                '<span style="background: #28a745; color: white; padding: 3px 10px; '
                'border-radius: 3px; font-size: 11px;">{}</span>', _('Active')
            )
        return format_html(
            '<span style="background: #dc3545; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>', _('Inactive')
        )
    is_active_badge.short_description = _('Status')
    is_active_badge.admin_order_field = 'is_active'

    def activate_users(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, _('%(count)d user(s) were successfully activated.') % {'count': updated}, level='success')
    activate_users.short_description = _('Activate selected users')

    def deactivate_users(self, request, queryset):
        updated = queryset.exclude(pk=request.user.pk).update(is_active=False)
        self.message_user(request, _('%(count)d user(s) were successfully deactivated.') % {'count': updated}, level='success')
    deactivate_users.short_description = _('Deactivate selected users')
