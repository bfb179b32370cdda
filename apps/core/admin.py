import json

from django.contrib import admin
from django.utils.html import format_html

from .models import CrmSetting, ActivityLog
from .services import settings_service


@admin.register(CrmSetting)
class CrmSettingAdmin(admin.ModelAdmin):

    list_display = [
        'key',
        'category',
        'value_preview',
        'public_badge',
        'updated_at'
    ]
    list_filter = ['category', 'is_public']
    search_fields = ['key', 'description']
    ordering = ['category', 'key']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Setting', {
            'fields': ('key', 'category', 'value', 'description')
        }),
        ('Visibility', {
            'fields': ('is_public',),
            'description': 'Public settings are exposed to every page (branding, identity...)'
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def value_preview(self, obj):
        value = obj.value
        if isinstance(value, str) and value.startswith('#') and len(value) == 7:
            return format_html(
                '<span style="display: inline-block; width: 14px; height: 14px; background-color: {}; '
                'border-radius: 3px; border: 1px solid #ddd; vertical-align: middle;"></span> {}',
                value,
                value
            )
        text = json.dumps(value) if not isinstance(value, str) else value
        return text if len(text) <= 60 else f"{text[:57]}..."

    value_preview.short_description = 'Value'

    def public_badge(self, obj):

        if obj.is_public:
            return format_html(
                '<span style="background-color: #28a745; color: white; '
                'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
                'Public</span>'
            )
        return format_html(
            '<span style="background-color: #6c757d; color: white; '
            'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
            'Private</span>'
        )

    public_badge.short_description = 'Visibility'

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        settings_service.clear_cache()

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        settings_service.clear_cache()


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):

    list_display = [
        'created_at',
        'log_name',
        'description',
        'subject_label',
        'causer'
    ]
    list_filter = ['log_name', 'subject_type', 'created_at']
    search_fields = ['description', 'causer__email']
    date_hierarchy = 'created_at'
    readonly_fields = ['log_name', 'description', 'subject_type', 'subject_id', 'causer', 'properties', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
