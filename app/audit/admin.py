"""
Django admin for the audit trail (read-only).
"""

from django.contrib import admin

from .models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "invoice",
        "actor",
        "event_type",
        "from_status",
        "to_status",
        "created_at",
    )
    list_filter = ("event_type", "to_status", "created_at")
    search_fields = ("invoice__id", "actor__email")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
