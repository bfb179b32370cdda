from django.contrib import admin

from .models import Event, GoogleCredential


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'type', 'priority', 'start_datetime', 'end_datetime', 'all_day']
    list_filter = ['type', 'priority', 'all_day', 'start_datetime']
    search_fields = ['title', 'description', 'location', 'user__email']
    raw_id_fields = ['user', 'contact', 'company', 'opportunity', 'reminder']
    date_hierarchy = 'start_datetime'


@admin.register(GoogleCredential)
class GoogleCredentialAdmin(admin.ModelAdmin):
    list_display = ['user', 'google_email', 'expires_at', 'updated_at']
    search_fields = ['user__email', 'google_email']
    readonly_fields = ['access_token', 'refresh_token', 'scope', 'expires_at', 'created_at', 'updated_at']
    raw_id_fields = ['user']
