from django.contrib import admin, messages
from django.utils import timezone

from .models import Document, DocumentVersion, DocumentLink


class DocumentVersionInline(admin.TabularInline):
    model = DocumentVersion
    extra = 0
    fields = ['version', 'original_filename', 'mime_type', 'size_bytes', 'created_by', 'created_at']
    readonly_fields = fields
    can_delete = False


class DocumentLinkInline(admin.TabularInline):
    model = DocumentLink
    extra = 0
    fields = ['company', 'contact', 'role']
    raw_id_fields = ['company', 'contact']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['name', 'original_filename', 'extension', 'size_human', 'visibility', 'owner', 'created_at', 'deleted_at']
    list_filter = ['visibility', 'extension', 'created_at', 'deleted_at']
    search_fields = ['name', 'original_filename', 'description']
    readonly_fields = ['uuid', 'mime_type', 'extension', 'size_bytes', 'created_at', 'updated_at']
    raw_id_fields = ['owner']
    inlines = [DocumentLinkInline, DocumentVersionInline]
    actions = ['restore_documents', 'trash_documents']

    def get_queryset(self, request):
        # Trashed documents stay reachable from the admin
        return Document.all_objects.select_related('owner')

    @admin.action(description='Restore selected documents')
    def restore_documents(self, request, queryset):
        updated = queryset.update(deleted_at=None)
        self.message_user(request, f'{updated} document(s) restored.', messages.SUCCESS)

    @admin.action(description='Move selected documents to trash')
    def trash_documents(self, request, queryset):
        updated = queryset.filter(deleted_at__isnull=True).update(deleted_at=timezone.now())
        self.message_user(request, f'{updated} document(s) moved to trash.', messages.SUCCESS)


@admin.register(DocumentLink)
class DocumentLinkAdmin(admin.ModelAdmin):
    list_display = ['document', 'company', 'contact', 'role', 'created_at']
    search_fields = ['document__name', 'company__name', 'contact__name', 'role']
    raw_id_fields = ['document', 'company', 'contact']
