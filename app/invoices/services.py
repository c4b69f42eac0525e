"""
Application layer - Django-aware orchestrator service for invoice objects.
Builds snapshots for the Domain layer, handles DB transactions and locking,
writes the audit trail and queues notifications after commit.
"""

import logging
from datetime import timedelta
from functools import partial

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from audit import services as audit
from delegations.services import active_delegate_for, active_delegators_for
from notifications import services as notifications

from . import workflows
from .models import Invoice, InvoiceWorkflow, SlaConfig
from .workflows import (
    Actor,
    InvoiceSnapshot,
    TransitionRequest,
    InvoiceWorkflowError,
    InvoiceNotFoundError,
    TransitionPermissionError,
    TransitionValidationError,
    ConcurrencyConflictError,
)

User = get_user_model()

logger = logging.getLogger(__name__)

MAX_BULK_INVOICES = 50
CONFLICT_MESSAGE = "Invoice was modified by another user. Please refresh."

# Roles that see every invoice in lists
GLOBAL_READ_ROLES = frozenset(
    {workflows.ADMIN, workflows.FINANCE, workflows.OPERATIONS, workflows.VIEWER}
)


# --- Snapshot builders ---


def _role_name(user) -> str:
    return user.role.name if user.role else ""


def build_actor(user) -> Actor:
    return Actor(
        id=user.pk,
        role=_role_name(user),
        is_operations_room_member=user.is_operations_room_member,
    )


def build_snapshot(workflow: InvoiceWorkflow, on_date=None) -> InvoiceSnapshot:
    """Freezes the invoice and its workflow row, resolving the delegate."""
    invoice = workflow.invoice
    return InvoiceSnapshot(
        id=invoice.pk,
        submitter_id=invoice.submitter_id,
        status=workflow.status,
        invoice_type=invoice.invoice_type,
        is_imported=invoice.is_imported,
        manager_id=workflow.manager_id,
        manager_role=(
            _role_name(workflow.manager) if workflow.manager_id else None
        ),
        delegate_id=active_delegate_for(workflow.manager_id, on_date),
        manager_confirmed=workflow.manager_confirmed,
    )


# --- SLA helper ---
def _get_sla_days(key: str, default: int) -> int:
    """Fetches an SLA configuration value from the DB, with a fallback."""
    try:
        return SlaConfig.objects.get(key=key).value_int
    except SlaConfig.DoesNotExist:
        return default


def _pick_manager(*, submitter, department=None, program=None):
    """
    Finds the approving manager for a new invoice.
    Priority 1: A manager responsible for the invoice's program.
    Priority 2: A manager in the invoice's department.
    Priority 3: Any manager in the system.
    Submitters never approve their own invoices.
    """
    managers = (
        User.objects.filter(role__name=workflows.MANAGER, is_active=True)
        .exclude(pk=submitter.pk)
        .order_by("id")
    )
    if program:
        manager = managers.filter(programs=program).first()
        if manager:
            return manager
    if department:
        manager = managers.filter(department=department).first()
        if manager:
            return manager
    return managers.first()


# --- Contextual data (for retrieve()) ---


def get_invoice_context(invoice: Invoice, user) -> dict:
    """Gathers the contextual data for the InvoiceDetailSerializer."""
    try:
        workflow = invoice.workflow
    except InvoiceWorkflow.DoesNotExist:
        return {"available_transitions": []}
    return {
        "available_transitions": workflows.get_available_transitions(
            build_actor(user), build_snapshot(workflow)
        )
    }


def get_invoice_visibility_filter(user) -> Q:
    """
    Returns a Q object for the invoices the user may list.
    Admins, finance, operations and viewers see everything; anyone else sees
    their own submissions, the invoices they approve (directly or as
    an active delegate) and, for Operations Room members, the invoices
    waiting in the Operations Room stages.
    """
    role_name = user.role.name if user.role else ""
    if role_name in GLOBAL_READ_ROLES:
        return Q()

    visible = Q(submitter=user)
    if role_name == workflows.MANAGER:
        visible |= Q(workflow__manager=user)
    delegators = active_delegators_for(user.pk)
    if delegators:
        visible |= Q(workflow__manager_id__in=delegators)
    if user.is_operations_room_member:
        visible |= Q(
            workflow__status__in=[
                workflows.APPROVED_BY_MANAGER,
                workflows.PENDING_ADMIN,
            ]
        )
    return visible


# --- Service Functions ---


@transaction.atomic
def create_invoice(*, user, **kwargs) -> Invoice:
    """
    Submits a new invoice: creates it with its workflow in pending_manager,
    assigns the approving manager and records the submission.
    """
    if user.role and user.role.name == workflows.VIEWER:
        raise TransitionPermissionError("Viewers cannot submit invoices.")

    # The submitter and workflow fields are never taken from input
    kwargs.pop("submitter", None)
    kwargs.pop("status", None)

    invoice = Invoice.objects.create(submitter=user, **kwargs)
    manager = _pick_manager(
        submitter=user,
        department=invoice.department,
        program=invoice.program,
    )
    InvoiceWorkflow.objects.create(
        invoice=invoice,
        status=workflows.PENDING_MANAGER,
        manager=manager,
        pending_manager_since=timezone.localdate(),
    )
    if manager is None:
        logger.warning("No manager available for invoice %s", invoice.pk)

    audit.record_event(
        invoice_id=invoice.pk,
        actor_id=user.pk,
        event_type=audit.INVOICE_SUBMITTED,
        to_status=workflows.PENDING_MANAGER,
        payload={"manager_id": manager.pk if manager else None},
    )
    return invoice


def _lock_workflow(invoice_id) -> InvoiceWorkflow:
    """Loads the workflow row with a row lock; call inside a transaction."""
    try:
        return (
            InvoiceWorkflow.objects.select_for_update(of=("self",))
            .select_related("invoice", "manager__role")
            .get(invoice_id=invoice_id)
        )
    except InvoiceWorkflow.DoesNotExist:
        if Invoice.objects.filter(pk=invoice_id).exists():
            raise InvoiceNotFoundError("Workflow not found")
        raise InvoiceNotFoundError("Invoice not found")


def _compare_and_set(workflow: InvoiceWorkflow, changes: dict):
    """Writes changes only if nobody bumped the version since the lock."""
    updated = InvoiceWorkflow.objects.filter(
        pk=workflow.pk, version=workflow.version
    ).update(
        **changes,
        version=F("version") + 1,
        updated_at=timezone.now(),
    )
    if not updated:
        raise ConcurrencyConflictError(CONFLICT_MESSAGE)


def transition_invoice(
    *,
    invoice_id,
    user,
    to_status: str,
    rejection_reason: str | None = None,
    payment_reference: str | None = None,
    paid_date=None,
    manager_confirmed: bool | None = None,
    admin_comment: str | None = None,
    expected_version: int | None = None,
    bulk: bool = False,
    on_date=None,
) -> InvoiceWorkflow:
    """
    Moves one invoice to to_status on behalf of user.
    Locks the workflow row, lets the Domain layer authorize and plan the
    change, then writes it with a compare-and-set on version. The audit
    event is written in the same transaction; notifications are queued
    once it commits.
    Raises an InvoiceWorkflowError subclass when the transition is refused.
    """
    today = on_date or timezone.localdate()
    actor = build_actor(user)
    request = TransitionRequest(
        to_status=to_status,
        rejection_reason=rejection_reason,
        payment_reference=payment_reference,
        paid_date=paid_date,
        manager_confirmed=manager_confirmed,
        admin_comment=admin_comment,
        bulk=bulk,
    )

    with transaction.atomic():
        workflow = _lock_workflow(invoice_id)
        if expected_version is not None and workflow.version != expected_version:
            raise ConcurrencyConflictError(CONFLICT_MESSAGE)

        outcome = workflows.apply_transition(
            actor, build_snapshot(workflow, today), request, today=today
        )

        _compare_and_set(workflow, outcome.changes)

        audit.record_event(
            invoice_id=workflow.pk,
            actor_id=user.pk,
            event_type=audit.STATUS_CHANGE,
            from_status=outcome.from_status,
            to_status=outcome.to_status,
            payload=outcome.audit_payload,
        )

        leaves_manager_stage = (
            workflows.normalize_status(outcome.from_status)
            == workflows.PENDING_MANAGER
        )
        if outcome.notifications or leaves_manager_stage:
            transaction.on_commit(
                partial(
                    _dispatch_notifications,
                    invoice_id=workflow.pk,
                    actor_id=user.pk,
                    intents=outcome.notifications,
                    close_reminders=leaves_manager_stage,
                )
            )

    logger.info(
        "Invoice %s moved %s -> %s by user %s%s",
        workflow.pk,
        outcome.from_status,
        outcome.to_status,
        user.pk,
        " (bulk)" if bulk else "",
    )
    workflow.refresh_from_db()
    return workflow


def confirm_bank_details(
    *, invoice_id, user, expected_version: int | None = None, on_date=None
) -> InvoiceWorkflow:
    """
    Records that the approver checked the bank details, so a later approval
    needs no manager_confirmed flag. The status does not change.
    """
    today = on_date or timezone.localdate()
    with transaction.atomic():
        workflow = _lock_workflow(invoice_id)
        if expected_version is not None and workflow.version != expected_version:
            raise ConcurrencyConflictError(CONFLICT_MESSAGE)

        workflows.can_confirm_bank_details(
            build_actor(user), build_snapshot(workflow, today)
        ).raise_for_denial()

        _compare_and_set(workflow, {"manager_confirmed": True})
        audit.record_event(
            invoice_id=workflow.pk,
            actor_id=user.pk,
            event_type=audit.BANK_DETAILS_CONFIRMED,
            from_status=workflow.status,
            to_status=workflow.status,
        )

    logger.info(
        "Bank details of invoice %s confirmed by user %s", workflow.pk, user.pk
    )
    workflow.refresh_from_db()
    return workflow


def _resolve_recipients(invoice: Invoice, groups) -> list:
    """Turns recipient groups from the Domain layer into users."""
    recipients = []
    for group in groups:
        if group == workflows.SUBMITTER_RECIPIENT:
            recipients.append(invoice.submitter)
        elif group == workflows.MANAGER_RECIPIENT:
            if invoice.workflow.manager_id:
                recipients.append(invoice.workflow.manager)
        elif group == workflows.FINANCE_RECIPIENTS:
            recipients.extend(
                User.objects.filter(
                    role__name=workflows.FINANCE, is_active=True
                )
            )
        elif group == workflows.ADMIN_RECIPIENTS:
            recipients.extend(
                User.objects.filter(role__name=workflows.ADMIN, is_active=True)
            )
    return recipients


def _dispatch_notifications(
    *, invoice_id, actor_id, intents, close_reminders=False
):
    """
    Runs after the transition commits. Failures are logged and never undo
    the state change.
    """
    try:
        if close_reminders:
            notifications.close_sla_reminders(invoice_id)
        if not intents:
            return
        invoice = Invoice.objects.select_related(
            "submitter", "workflow", "workflow__manager"
        ).get(pk=invoice_id)
        for intent in intents:
            notifications.notify(
                kind=intent.kind,
                recipients=_resolve_recipients(invoice, intent.recipients),
                invoice=invoice,
                triggered_by_id=actor_id,
            )
    except Exception:
        logger.exception(
            "Notifications for invoice %s could not be queued", invoice_id
        )


def bulk_transition(*, invoice_ids, user, to_status: str, **extras) -> dict:
    """
    Applies one transition to many invoices. Each id runs through
    transition_invoice in its own transaction; a failure is recorded
    against its id and the batch carries on.
    Returns {"success": <count>, "failed": [{"id", "error"}]}.
    """
    if not invoice_ids:
        raise TransitionValidationError("invoice_ids must not be empty")
    if len(invoice_ids) > MAX_BULK_INVOICES:
        raise TransitionValidationError(
            f"Cannot process more than {MAX_BULK_INVOICES} invoices at once"
        )
    extras.pop("expected_version", None)

    success = 0
    failed = []
    for invoice_id in invoice_ids:
        try:
            transition_invoice(
                invoice_id=invoice_id,
                user=user,
                to_status=to_status,
                bulk=True,
                **extras,
            )
        except InvoiceWorkflowError as e:
            failed.append({"id": invoice_id, "error": str(e)})
        except Exception:
            logger.exception(
                "Bulk transition of invoice %s to %s failed",
                invoice_id,
                to_status,
            )
            failed.append(
                {"id": invoice_id, "error": "Unexpected error, see logs"}
            )
        else:
            success += 1

    logger.info(
        "Bulk transition to %s by user %s: %d succeeded, %d failed",
        to_status,
        user.pk,
        success,
        len(failed),
    )
    return {"success": success, "failed": failed}


# --- SLA reminders ---


def send_sla_reminders(today=None) -> int:
    """
    Queues a reminder for every invoice that has waited for its manager
    longer than manager_sla_days. Returns the number of new reminders.
    """
    today = today or timezone.localdate()
    sla_days = _get_sla_days(key="manager_sla_days", default=5)
    cutoff = today - timedelta(days=sla_days)

    overdue = InvoiceWorkflow.objects.select_related(
        "invoice", "manager"
    ).filter(
        status__in=[workflows.PENDING_MANAGER, workflows.SUBMITTED],
        manager__isnull=False,
        pending_manager_since__lte=cutoff,
    )

    queued = 0
    for workflow in overdue:
        created = notifications.queue_sla_reminder(
            invoice=workflow.invoice,
            manager=workflow.manager,
            days_pending=(today - workflow.pending_manager_since).days,
        )
        if created:
            queued += 1

    logger.info("Queued %d SLA reminder(s)", queued)
    return queued
