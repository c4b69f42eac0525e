"""
Data models for the notifications app.
An in-app queue of invoice notifications; a delivery worker (email etc.)
consumes queued rows outside the request cycle.
"""

from django.db import models
from django.conf import settings
from django.db.models import Q


# To prevent circular dependencies - No direct import of other apps' models


class Notification(models.Model):
    """A queued notification about one invoice event."""

    class EntityType(models.TextChoices):
        INVOICE = "INVOICE", "Invoice"

    class EventType(models.TextChoices):
        MANAGER_APPROVED = "MANAGER_APPROVED", "Manager Approved"
        READY_FOR_PAYMENT = "READY_FOR_PAYMENT", "Ready for Payment"
        MANAGER_REJECTED = "MANAGER_REJECTED", "Manager Rejected"
        INVOICE_PAID = "INVOICE_PAID", "Invoice Paid"
        RESUBMITTED = "RESUBMITTED", "Resubmitted"
        SLA_REMINDER = "SLA_REMINDER", "SLA Reminder"
        CUSTOM = "CUSTOM", "Custom"

    class SlaStage(models.TextChoices):
        PENDING_MANAGER = "PENDING_MANAGER", "Pending Manager"

    class Method(models.TextChoices):
        SYSTEM = "SYSTEM", "System (in-app)"
        EMAIL = "EMAIL", "Email"
        WEBHOOK = "WEBHOOK", "Webhook"

    class Status(models.TextChoices):
        QUEUED = "queued", "Queued"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"
        CANCELED = "canceled", "Canceled"

    # Polymorphic link to the source entity
    entity_type = models.CharField(
        max_length=30,
        choices=EntityType.choices,
        default=EntityType.INVOICE,
    )
    entity_id = models.IntegerField()

    # What triggered this?
    event_type = models.CharField(max_length=50, choices=EventType.choices)
    sla_stage = models.CharField(
        max_length=30, choices=SlaStage.choices, blank=True, null=True
    )
    triggered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,  # User who caused it might be deleted
        null=True,
        blank=True,
        related_name="triggered_notifications",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    # How?
    method = models.CharField(
        max_length=30, choices=Method.choices, default=Method.SYSTEM
    )
    payload = models.JSONField(blank=True, null=True)  # Extra context
    requires_action = models.BooleanField(default=False)
    action_url = models.CharField(max_length=500, blank=True, null=True)

    # State
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.QUEUED
    )
    attempts = models.IntegerField(default=0)
    last_error = models.TextField(blank=True, null=True)
    sent_at = models.DateTimeField(blank=True, null=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        # One active SLA reminder per invoice and stage
        constraints = [
            models.UniqueConstraint(
                fields=["entity_type", "entity_id", "event_type", "sla_stage"],
                condition=Q(active=True, event_type="SLA_REMINDER"),
                name="ux_notifications_active_sla",
            )
        ]

    def __str__(self):
        return f"{self.event_type} for {self.entity_type} {self.entity_id}"


class UserNotification(models.Model):
    """
    Maps a single Notification to its recipients
    and tracks their individual read status.
    """

    notification = models.ForeignKey(
        Notification, on_delete=models.CASCADE, related_name="deliveries"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="in_app_notifications",
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        unique_together = ("notification", "user")
