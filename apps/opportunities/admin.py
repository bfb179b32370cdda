from django.contrib import admin
from django.utils.html import format_html

from .models import Opportunity, OpportunityActivity


STAGE_HEX = {
    'blue': '#3b82f6',
    'yellow': '#eab308',
    'purple': '#a855f7',
    'orange': '#f97316',
    'green': '#22c55e',
    'red': '#ef4444',
}


class OpportunityActivityInline(admin.TabularInline):
    model = OpportunityActivity
    extra = 0
    fields = ['type', 'title', 'user', 'scheduled_at', 'completed_at', 'created_at']
    readonly_fields = ['created_at']
    raw_id_fields = ['user']
    classes = ['collapse']


@admin.register(Opportunity)
class OpportunityAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact', 'company', 'owner', 'amount', 'probability', 'stage_badge', 'expected_close_date']
    list_filter = ['stage', 'currency', 'expected_close_date', 'created_at']
    search_fields = ['name', 'description', 'contact__name', 'company__name']
    list_select_related = ['contact', 'company', 'owner']
    raw_id_fields = ['contact', 'company', 'owner']
    readonly_fields = ['actual_close_date', 'created_at', 'updated_at']
    date_hierarchy = 'expected_close_date'
    inlines = [OpportunityActivityInline]

    fieldsets = (
        ('Deal', {'fields': ('name', 'description', 'contact', 'company', 'owner')}),
        ('Pipeline', {'fields': ('stage', 'amount', 'currency', 'probability', 'expected_close_date', 'actual_close_date')}),
        ('Details', {'fields': ('lead_source', 'loss_reason', 'next_step', 'products', 'competitors', 'custom_fields'),
                     'classes': ('collapse',)}),
        ('Dates', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def stage_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            STAGE_HEX.get(obj.stage_color, '#6b7280'),
            obj.get_stage_display(),
        )
    stage_badge.short_description = 'Stage'


@admin.register(OpportunityActivity)
class OpportunityActivityAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'opportunity', 'user', 'created_at', 'completed_at']
    list_filter = ['type', 'created_at']
    search_fields = ['title', 'description', 'opportunity__name']
    list_select_related = ['opportunity', 'user']
    raw_id_fields = ['opportunity', 'user']
