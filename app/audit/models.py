"""
Data models for the audit trail.
"""

from django.conf import settings
from django.db import models

from core.models import CreatedAtModel


class AuditEvent(CreatedAtModel):
    """
    An immutable fact about who changed what on an invoice.
    Rows are inserted once and never updated or deleted. Deleting the
    invoice or user an event points at is refused.
    """

    invoice = models.ForeignKey(
        "invoices.Invoice",  # String path avoids a circular import
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="audit_events",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="audit_events",
    )
    event_type = models.CharField(max_length=50)
    from_status = models.CharField(max_length=30, blank=True, null=True)
    to_status = models.CharField(max_length=30, blank=True, null=True)
    payload = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["invoice", "created_at"], name="ix_audit_invoice"
            )
        ]

    def __str__(self):
        return f"{self.event_type} on invoice {self.invoice_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit events are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit events cannot be deleted.")
