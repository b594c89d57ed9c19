from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only view of the audit trail."""

    list_display = ['timestamp', 'action_type', 'entity_type', 'entity_id', 'user']
    list_filter = ['action_type', 'entity_type', 'timestamp']
    search_fields = ['entity_id', 'user__email']
    date_hierarchy = 'timestamp'
    readonly_fields = ['user', 'entity_type', 'entity_id', 'action_type', 'timestamp', 'details']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
