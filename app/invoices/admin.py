"""
Django admin and customizations for models of invoices app.
"""

from django.contrib import admin

from invoices import models

admin.site.register(models.SlaConfig)


class InvoiceWorkflowInline(admin.StackedInline):
    """Workflow rows change only through transitions, so show them as-is."""

    model = models.InvoiceWorkflow
    can_delete = False
    readonly_fields = (
        "status",
        "manager",
        "rejection_reason",
        "admin_comment",
        "payment_reference",
        "paid_date",
        "pending_manager_since",
        "manager_confirmed",
        "version",
        "updated_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(models.Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "invoice_number",
        "invoice_type",
        "submitter",
        "gross_amount",
        "currency",
        "created_at",
    )
    list_filter = ("invoice_type", "is_imported", "department")
    search_fields = ("invoice_number", "submitter__email")
    autocomplete_fields = ("submitter", "department", "program")
    inlines = [InvoiceWorkflowInline]
