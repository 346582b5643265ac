"""
Admin interface for work items.
"""

from django.contrib import admin
from .models import WorkItem


@admin.register(WorkItem)
class WorkItemAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'name',
        'location',
        'execution_status',
        'article_status',
        'draft_produced_at',
        'updated_at',
    ]

    list_filter = [
        'execution_status',
        'article_status',
    ]

    search_fields = [
        'name',
        'location',
    ]

    readonly_fields = [
        'draft_produced_at',
        'metadata',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Work', {
            'fields': ('name', 'location', 'execution_status'),
        }),
        ('Article', {
            'fields': ('article_status', 'article_data', 'draft_produced_at'),
        }),
        ('Audit', {
            'fields': ('metadata', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )
