from django.contrib import admin

from .models import Reminder, EmailTemplate


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'type', 'priority', 'status', 'reminder_date', 'is_recurring', 'notified_at']
    list_filter = ['status', 'type', 'priority', 'is_recurring', 'reminder_date']
    search_fields = ['title', 'description', 'user__email']
    raw_id_fields = ['user', 'opportunity', 'contact']
    date_hierarchy = 'reminder_date'


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'user', 'is_active', 'is_shared', 'usage_count', 'updated_at']
    list_filter = ['category', 'is_active', 'is_shared']
    search_fields = ['name', 'subject', 'body']
    readonly_fields = ['variables', 'usage_count', 'created_at', 'updated_at']
    raw_id_fields = ['user']
