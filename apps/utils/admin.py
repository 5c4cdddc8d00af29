# utils/admin.py

from django.contrib import admin
from .models import FinancialAuditLog


@admin.register(FinancialAuditLog)
class FinancialAuditLogAdmin(admin.ModelAdmin):
    list_display = [
        'timestamp', 'action', 'risk_level', 'amount_involved',
        'currency', 'student_name', 'user_name', 'is_automated'
    ]
    list_filter = ['action', 'risk_level', 'is_automated', 'timestamp']
    search_fields = ['object_description', 'student_name', 'user_name', 'object_id', 'notes']
    readonly_fields = [
        'id', 'timestamp', 'action', 'user_id', 'user_name', 'ip_address',
        'user_agent', 'content_type', 'object_id', 'object_description',
        'amount_involved', 'currency', 'student_id', 'student_name',
        'old_values', 'new_values', 'risk_level', 'additional_data',
        'notes', 'is_automated',
    ]

    fieldsets = (
        ('What Happened', {
            'fields': ('action', 'risk_level', 'notes', 'amount_involved', 'currency')
        }),
        ('Affected Records', {
            'fields': ('content_type', 'object_id', 'object_description', 'student_id', 'student_name')
        }),
        ('Who & Where', {
            'fields': ('user_id', 'user_name', 'ip_address', 'user_agent', 'is_automated', 'timestamp')
        }),
        ('Values', {
            'fields': ('old_values', 'new_values', 'additional_data'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        # Audit logs are written by the ledger only
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser
