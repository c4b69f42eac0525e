"""
Notification collaborator: queues in-app notifications for invoice events.
Delivery itself (email, webhooks) happens outside the workflow engine.
"""

import logging

from django.db import transaction

from .models import Notification, UserNotification

logger = logging.getLogger(__name__)

ACTION_REQUIRED = {
    Notification.EventType.RESUBMITTED,
    Notification.EventType.SLA_REMINDER,
    Notification.EventType.READY_FOR_PAYMENT,
}


def _invoice_url(invoice_id) -> str:
    return f"/invoices/{invoice_id}/"


@transaction.atomic
def notify(*, kind, recipients, invoice, triggered_by_id=None, payload=None):
    """
    Queues one notification of the given kind for the recipients.
    Returns the Notification, or None when nobody is left to notify.
    """
    recipients = list({user.pk: user for user in recipients}.values())
    if not recipients:
        logger.debug("No recipients for %s on invoice %s", kind, invoice.pk)
        return None

    notification = Notification.objects.create(
        entity_type=Notification.EntityType.INVOICE,
        entity_id=invoice.pk,
        event_type=kind,
        triggered_by_id=triggered_by_id,
        requires_action=kind in ACTION_REQUIRED,
        action_url=_invoice_url(invoice.pk),
        payload={
            "invoice_number": invoice.invoice_number,
            "invoice_type": invoice.invoice_type,
            **(payload or {}),
        },
    )
    UserNotification.objects.bulk_create(
        [
            UserNotification(notification=notification, user=user)
            for user in recipients
        ]
    )
    logger.info(
        "Queued %s for invoice %s to %d recipient(s)",
        kind,
        invoice.pk,
        len(recipients),
    )
    return notification


@transaction.atomic
def queue_sla_reminder(*, invoice, manager, days_pending: int) -> bool:
    """
    Queues an SLA reminder for the invoice's manager unless an active one
    already exists. Returns True when a new reminder was queued.
    """
    notification, created = Notification.objects.get_or_create(
        entity_type=Notification.EntityType.INVOICE,
        entity_id=invoice.pk,
        event_type=Notification.EventType.SLA_REMINDER,
        sla_stage=Notification.SlaStage.PENDING_MANAGER,
        active=True,
        defaults={
            "requires_action": True,
            "action_url": _invoice_url(invoice.pk),
            "payload": {
                "invoice_number": invoice.invoice_number,
                "days_pending": days_pending,
            },
        },
    )
    if created:
        UserNotification.objects.create(notification=notification, user=manager)
    return created


def close_sla_reminders(invoice_id) -> int:
    """Deactivates pending SLA reminders once the invoice leaves the stage."""
    return Notification.objects.filter(
        entity_type=Notification.EntityType.INVOICE,
        entity_id=invoice_id,
        event_type=Notification.EventType.SLA_REMINDER,
        active=True,
    ).update(active=False)
