"""
Application layer - append-only audit trail.
"""

import logging

from django.db import DatabaseError, transaction

from .models import AuditEvent

logger = logging.getLogger(__name__)

STATUS_CHANGE = "status_change"
INVOICE_SUBMITTED = "invoice_submitted"
BANK_DETAILS_CONFIRMED = "bank_details_confirmed"


def record_event(
    *,
    invoice_id,
    actor_id,
    event_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    payload: dict | None = None,
) -> AuditEvent | None:
    """
    Appends one audit event. Runs in its own savepoint, so a failed insert
    leaves the caller's transaction usable; the failure is logged and
    None is returned.
    """
    try:
        with transaction.atomic():
            return AuditEvent.objects.create(
                invoice_id=invoice_id,
                actor_id=actor_id,
                event_type=event_type,
                from_status=from_status,
                to_status=to_status,
                payload=payload or {},
            )
    except DatabaseError:
        logger.error(
            "Audit event %s for invoice %s (actor %s, %s -> %s) was not "
            "written; the audit trail is incomplete",
            event_type,
            invoice_id,
            actor_id,
            from_status,
            to_status,
            exc_info=True,
        )
        return None


def history_for(invoice_id):
    """Audit events of one invoice, oldest first."""
    return (
        AuditEvent.objects.filter(invoice_id=invoice_id)
        .select_related("actor")
        .order_by("created_at", "id")
    )
