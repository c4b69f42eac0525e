"""
Data models for the invoice domain.
"""

from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _

from core.models import TimestampedModel
from references.models import Department, Program

from . import workflows


class InvoiceStatus(models.TextChoices):
    """Defines the workflow statuses for an Invoice."""

    SUBMITTED = workflows.SUBMITTED, _("Submitted")
    PENDING_MANAGER = workflows.PENDING_MANAGER, _("Pending manager")
    APPROVED_BY_MANAGER = workflows.APPROVED_BY_MANAGER, _(
        "Approved by manager"
    )
    REJECTED = workflows.REJECTED, _("Rejected")
    PENDING_ADMIN = workflows.PENDING_ADMIN, _("The Operations Room")
    READY_FOR_PAYMENT = workflows.READY_FOR_PAYMENT, _("Ready for payment")
    PAID = workflows.PAID, _("Paid")
    ARCHIVED = workflows.ARCHIVED, _("Archived")


class InvoiceType(models.TextChoices):
    GUEST = workflows.GUEST, _("Guest")
    FREELANCER = workflows.FREELANCER, _("Contractor")
    OTHER = workflows.OTHER, _("Other")


class Invoice(TimestampedModel):
    """An expense/payment request raised by a submitter."""

    invoice_type = models.CharField(
        max_length=20, choices=InvoiceType.choices, default=InvoiceType.OTHER
    )
    submitter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="submitted_invoices",
    )
    department = models.ForeignKey(
        Department, on_delete=models.PROTECT, blank=True, null=True
    )
    program = models.ForeignKey(
        Program, on_delete=models.PROTECT, blank=True, null=True
    )
    service_description = models.TextField(blank=True, null=True)
    invoice_number = models.CharField(max_length=100, blank=True, null=True)
    gross_amount = models.DecimalField(
        max_digits=18, decimal_places=2, blank=True, null=True
    )
    currency = models.CharField(max_length=3, default="GBP")
    is_imported = models.BooleanField(
        default=False,
        help_text="Created by bulk import rather than submission.",
    )

    def __str__(self):
        return self.invoice_number or f"Invoice {self.pk}"


class InvoiceWorkflow(models.Model):
    """
    Lifecycle state of an invoice. Written only by invoices.services;
    version is bumped on every transition for optimistic locking.
    """

    invoice = models.OneToOneField(
        Invoice,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="workflow",
    )
    status = models.CharField(
        max_length=30,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.PENDING_MANAGER,
        db_index=True,
    )
    manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="assigned_invoice_workflows",
        help_text="Assigned approver.",
    )
    rejection_reason = models.TextField(blank=True, null=True)
    admin_comment = models.TextField(blank=True, null=True)
    payment_reference = models.CharField(max_length=255, blank=True, null=True)
    paid_date = models.DateField(blank=True, null=True)
    pending_manager_since = models.DateField(blank=True, null=True)
    manager_confirmed = models.BooleanField(
        default=False, help_text="Manager has reviewed the bank details."
    )
    version = models.PositiveIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.invoice} [{self.status}]"


class SlaConfig(models.Model):
    """Deadlines for workflow stages in days; drive reminder notifications."""

    key = models.CharField(primary_key=True, max_length=50)
    value_int = models.IntegerField()
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key
