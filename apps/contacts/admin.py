from django.contrib import admin
from django.utils.html import format_html

from .models import Contact, Company, ContactImport, ContactImportFailure


STATUS_COLORS = {
    'nouveau': '#3b82f6',
    'qualification': '#eab308',
    'proposition_envoyee': '#a855f7',
    'negociation': '#f97316',
    'converti': '#22c55e',
    'perdu': '#ef4444',
    'Prospect': '#3b82f6',
    'Client': '#22c55e',
    'Inactif': '#6b7280',
}


def _badge(value, label):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
        STATUS_COLORS.get(value, '#6b7280'),
        label,
    )


class ContactInline(admin.TabularInline):
    model = Contact
    extra = 0
    fields = ['name', 'email', 'phone', 'status', 'user']
    show_change_link = True
    classes = ['collapse']


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'domain', 'industry', 'status_badge', 'owner', 'contacts_total', 'created_at']
    list_filter = ['status', 'industry', 'created_at']
    search_fields = ['name', 'domain', 'industry', 'city']
    list_select_related = ['owner']
    raw_id_fields = ['owner']
    inlines = [ContactInline]

    fieldsets = (
        ('Company', {'fields': ('name', 'domain', 'industry', 'size', 'status', 'owner')}),
        ('Address', {'fields': ('address', 'zipcode', 'city', 'country'), 'classes': ('collapse',)}),
        ('Notes', {'fields': ('notes',)}),
    )

    def status_badge(self, obj):
        return _badge(obj.status, obj.get_status_display())
    status_badge.short_description = 'Status'

    def contacts_total(self, obj):
        return obj.contacts.count()
    contacts_total.short_description = 'Contacts'


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'company', 'status_badge', 'user', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'email', 'phone', 'company__name']
    list_select_related = ['company', 'user']
    raw_id_fields = ['company', 'user']
    date_hierarchy = 'created_at'

    def status_badge(self, obj):
        return _badge(obj.status, obj.get_status_display())
    status_badge.short_description = 'Status'


class ContactImportFailureInline(admin.TabularInline):
    model = ContactImportFailure
    extra = 0
    readonly_fields = ['row_number', 'data', 'errors', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ContactImport)
class ContactImportAdmin(admin.ModelAdmin):
    list_display = ['filename', 'user', 'status', 'total_rows', 'imported_rows', 'failed_rows', 'created_at', 'finished_at']
    list_filter = ['status', 'cancelled']
    readonly_fields = ['user', 'filename', 'status', 'total_rows', 'processed_rows', 'imported_rows',
                       'failed_rows', 'cancelled', 'created_at', 'finished_at']
    inlines = [ContactImportFailureInline]

    def has_add_permission(self, request):
        return False
