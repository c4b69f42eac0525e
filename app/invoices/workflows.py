"""
Domain layer - pure, Django-unaware, a data-driven state machine.
Decides whether an actor may move an invoice between statuses, validates
the request for that edge and computes the resulting changes, audit payload
and notifications. Single and bulk transitions both go through here.
"""

from dataclasses import dataclass, field
from datetime import date


# --- 1. Vocabulary ---

SUBMITTED = "submitted"
PENDING_MANAGER = "pending_manager"
APPROVED_BY_MANAGER = "approved_by_manager"
REJECTED = "rejected"
PENDING_ADMIN = "pending_admin"
READY_FOR_PAYMENT = "ready_for_payment"
PAID = "paid"
ARCHIVED = "archived"

STATUSES = (
    SUBMITTED,
    PENDING_MANAGER,
    APPROVED_BY_MANAGER,
    REJECTED,
    PENDING_ADMIN,
    READY_FOR_PAYMENT,
    PAID,
    ARCHIVED,
)

# Roles, as stored in references.Role.name
ADMIN = "admin"
MANAGER = "manager"
FINANCE = "finance"
OPERATIONS = "operations"
SUBMITTER = "submitter"
VIEWER = "viewer"

GUEST = "guest"
FREELANCER = "freelancer"
OTHER = "other"

# Notification kinds
MANAGER_APPROVED_EVENT = "MANAGER_APPROVED"
READY_FOR_PAYMENT_EVENT = "READY_FOR_PAYMENT"
MANAGER_REJECTED_EVENT = "MANAGER_REJECTED"
INVOICE_PAID_EVENT = "INVOICE_PAID"
RESUBMITTED_EVENT = "RESUBMITTED"

# Recipient groups, resolved to users by the application layer
SUBMITTER_RECIPIENT = "submitter"
MANAGER_RECIPIENT = "manager"
FINANCE_RECIPIENTS = "finance"
ADMIN_RECIPIENTS = "admins"


# --- 2. Errors ---


class InvoiceWorkflowError(Exception):
    """Base class for every typed transition failure."""

    pass


class InvoiceNotFoundError(InvoiceWorkflowError):
    """The invoice or its workflow row does not exist."""

    pass


class InvalidTransitionError(InvoiceWorkflowError):
    """The requested edge is not in the state table."""

    pass


class TransitionPermissionError(InvoiceWorkflowError):
    """The edge exists but the actor is not allowed to take it."""

    pass


class TransitionValidationError(InvoiceWorkflowError):
    """A field required by the edge is missing or invalid."""

    pass


class ConcurrencyConflictError(InvoiceWorkflowError):
    """The workflow changed underneath the request."""

    pass


# --- 3. Snapshots and results ---


@dataclass(frozen=True)
class Actor:
    """The acting user, as supplied by the identity provider."""

    id: int
    role: str
    is_operations_room_member: bool = False


@dataclass(frozen=True)
class InvoiceSnapshot:
    """Invoice ownership plus its current workflow row.
    delegate_id is the active stand-in for manager_id on the request date;
    manager_role is the assigned manager's current role.
    """

    id: int
    submitter_id: int
    status: str
    invoice_type: str = OTHER
    is_imported: bool = False
    manager_id: int | None = None
    manager_role: str | None = None
    delegate_id: int | None = None
    manager_confirmed: bool = False


@dataclass(frozen=True)
class TransitionRequest:
    to_status: str
    rejection_reason: str | None = None
    payment_reference: str | None = None
    paid_date: date | None = None
    manager_confirmed: bool | None = None
    admin_comment: str | None = None
    bulk: bool = False


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check; error is the exception to raise."""

    allowed: bool
    reason: str = ""
    error: type | None = None

    @classmethod
    def allow(cls):
        return cls(allowed=True)

    @classmethod
    def deny(cls, error, reason):
        return cls(allowed=False, reason=reason, error=error)

    def raise_for_denial(self):
        if not self.allowed:
            raise self.error(self.reason)


@dataclass(frozen=True)
class NotificationIntent:
    kind: str
    recipients: tuple


@dataclass(frozen=True)
class TransitionOutcome:
    from_status: str
    to_status: str
    changes: dict
    audit_payload: dict = field(default_factory=dict)
    notifications: tuple = ()


# --- 4. Transition table ---

# Capabilities; see CAPABILITY_PREDICATES below
CAN_ADMIN = "admin"
CAN_APPROVE = "approver"
CAN_OPERATIONS_ROOM = "operations_room"
CAN_FINANCE = "finance_gate"
CAN_OWN = "owner"

# { from_status: { to_status: (capabilities, any of which suffices) } }
ALLOWED_TRANSITIONS = {
    PENDING_MANAGER: {
        APPROVED_BY_MANAGER: (CAN_ADMIN, CAN_APPROVE),
        REJECTED: (CAN_ADMIN, CAN_APPROVE),
        READY_FOR_PAYMENT: (CAN_ADMIN,),
    },
    APPROVED_BY_MANAGER: {
        PENDING_ADMIN: (CAN_ADMIN, CAN_OPERATIONS_ROOM),
        READY_FOR_PAYMENT: (CAN_ADMIN, CAN_OPERATIONS_ROOM),
    },
    PENDING_ADMIN: {
        APPROVED_BY_MANAGER: (CAN_ADMIN, CAN_OPERATIONS_ROOM),
        READY_FOR_PAYMENT: (CAN_ADMIN, CAN_OPERATIONS_ROOM),
    },
    READY_FOR_PAYMENT: {
        PAID: (CAN_ADMIN, CAN_FINANCE),
    },
    PAID: {
        ARCHIVED: (CAN_ADMIN, CAN_FINANCE),
    },
    REJECTED: {
        PENDING_MANAGER: (CAN_ADMIN, CAN_OWN),
    },
    ARCHIVED: {},  # Terminal state
}

# Legacy entry status, same state as pending_manager
STATUS_ALIASES = {SUBMITTED: PENDING_MANAGER}

SELF_APPROVAL_TARGETS = frozenset({APPROVED_BY_MANAGER, REJECTED})
FINANCE_GATE_STATUSES = frozenset({READY_FOR_PAYMENT, PAID, ARCHIVED})

SELF_APPROVAL_MESSAGE = "You cannot approve or reject your own invoice"
VIEWER_MESSAGE = "Viewers cannot change invoice status."
REJECTION_REASON_MESSAGE = "rejection_reason is required"
BANK_DETAILS_MESSAGE = "Manager must confirm bank details before approval"
CONFIRM_OWN_MESSAGE = "You cannot confirm bank details on your own invoice"
CONFIRM_STAGE_MESSAGE = (
    "Bank details can only be confirmed while the invoice awaits its manager."
)

DENIAL_REASONS = {
    CAN_ADMIN: "Only admins can perform this transition.",
    CAN_APPROVE: (
        "Only the assigned manager or their active delegate can approve"
        " or reject this invoice."
    ),
    CAN_OPERATIONS_ROOM: (
        "Only admins or Operations Room members can act on invoices"
        " in this stage."
    ),
    CAN_FINANCE: "Only finance or admins can record payment or archive.",
    CAN_OWN: "Only the submitter or an admin can resubmit this invoice.",
}

NOTIFICATION_RULES = {
    (PENDING_MANAGER, APPROVED_BY_MANAGER): NotificationIntent(
        MANAGER_APPROVED_EVENT,
        (SUBMITTER_RECIPIENT, FINANCE_RECIPIENTS, ADMIN_RECIPIENTS),
    ),
    (PENDING_MANAGER, READY_FOR_PAYMENT): NotificationIntent(
        READY_FOR_PAYMENT_EVENT,
        (SUBMITTER_RECIPIENT, FINANCE_RECIPIENTS, ADMIN_RECIPIENTS),
    ),
    (PENDING_MANAGER, REJECTED): NotificationIntent(
        MANAGER_REJECTED_EVENT, (SUBMITTER_RECIPIENT,)
    ),
    (APPROVED_BY_MANAGER, READY_FOR_PAYMENT): NotificationIntent(
        READY_FOR_PAYMENT_EVENT, (SUBMITTER_RECIPIENT, FINANCE_RECIPIENTS)
    ),
    (PENDING_ADMIN, READY_FOR_PAYMENT): NotificationIntent(
        READY_FOR_PAYMENT_EVENT, (SUBMITTER_RECIPIENT, FINANCE_RECIPIENTS)
    ),
    (READY_FOR_PAYMENT, PAID): NotificationIntent(
        INVOICE_PAID_EVENT, (SUBMITTER_RECIPIENT, ADMIN_RECIPIENTS)
    ),
    (REJECTED, PENDING_MANAGER): NotificationIntent(
        RESUBMITTED_EVENT, (MANAGER_RECIPIENT,)
    ),
}


def normalize_status(status: str) -> str:
    """Maps legacy status names onto the state they stand for."""
    return STATUS_ALIASES.get(status, status)


def get_edge_capabilities(invoice: InvoiceSnapshot, to_status: str):
    """
    Returns the capabilities that unlock the edge from the invoice's current
    status to to_status, or None if the edge is not in the table.
    """
    from_status = normalize_status(invoice.status)
    if (
        from_status == PAID
        and invoice.invoice_type == GUEST
        and invoice.is_imported
    ):
        return None  # Imported guest invoices are final once paid
    return ALLOWED_TRANSITIONS.get(from_status, {}).get(to_status)


# --- 5. Contextual Permissions ---


def is_owner(actor: Actor, invoice: InvoiceSnapshot) -> bool:
    return actor.id == invoice.submitter_id


def is_assigned_approver(actor: Actor, invoice: InvoiceSnapshot) -> bool:
    return invoice.manager_id is not None and actor.id == invoice.manager_id


def is_delegate(actor: Actor, invoice: InvoiceSnapshot) -> bool:
    """Stands in only while the assigned manager holds the manager role."""
    return (
        invoice.manager_id is not None
        and invoice.manager_role == MANAGER
        and invoice.delegate_id is not None
        and actor.id == invoice.delegate_id
    )


def is_operations_room(actor: Actor, invoice: InvoiceSnapshot) -> bool:
    return actor.is_operations_room_member


def is_finance_gate(actor: Actor, invoice: InvoiceSnapshot) -> bool:
    return (
        actor.role == FINANCE
        and normalize_status(invoice.status) in FINANCE_GATE_STATUSES
    )


CAPABILITY_PREDICATES = {
    CAN_ADMIN: lambda actor, invoice: actor.role == ADMIN,
    CAN_APPROVE: lambda actor, invoice: (
        actor.role == MANAGER and is_assigned_approver(actor, invoice)
    )
    or is_delegate(actor, invoice),
    CAN_OPERATIONS_ROOM: is_operations_room,
    CAN_FINANCE: is_finance_gate,
    CAN_OWN: is_owner,
}


def get_capabilities(actor: Actor, invoice: InvoiceSnapshot) -> frozenset:
    """All capabilities the actor holds over this invoice right now."""
    if actor.role == VIEWER:
        return frozenset()
    return frozenset(
        name
        for name, predicate in CAPABILITY_PREDICATES.items()
        if predicate(actor, invoice)
    )


def can_transition(
    actor: Actor, invoice: InvoiceSnapshot, to_status: str
) -> Decision:
    """
    Decides whether the actor may request to_status for this invoice.
    Owners (except admins) can never approve or reject their own invoice,
    whatever the edge; otherwise an edge missing from the table is an
    invalid transition, and an existing edge needs one of its capabilities.
    """
    if (
        actor.role != ADMIN
        and is_owner(actor, invoice)
        and to_status in SELF_APPROVAL_TARGETS
    ):
        return Decision.deny(TransitionPermissionError, SELF_APPROVAL_MESSAGE)

    required = get_edge_capabilities(invoice, to_status)
    if required is None:
        return Decision.deny(
            InvalidTransitionError,
            f"Invalid transition from '{invoice.status}' to '{to_status}'.",
        )

    if actor.role == VIEWER:
        return Decision.deny(TransitionPermissionError, VIEWER_MESSAGE)

    if get_capabilities(actor, invoice) & set(required):
        return Decision.allow()

    specific = [name for name in required if name != CAN_ADMIN]
    reason = DENIAL_REASONS[specific[0] if specific else CAN_ADMIN]
    return Decision.deny(TransitionPermissionError, reason)


def can_confirm_bank_details(
    actor: Actor, invoice: InvoiceSnapshot
) -> Decision:
    """
    Decides whether the actor may confirm the bank details ahead of approval.
    Only whoever could approve the invoice right now may confirm them.
    """
    if actor.role != ADMIN and is_owner(actor, invoice):
        return Decision.deny(TransitionPermissionError, CONFIRM_OWN_MESSAGE)

    if normalize_status(invoice.status) != PENDING_MANAGER:
        return Decision.deny(InvalidTransitionError, CONFIRM_STAGE_MESSAGE)

    if get_capabilities(actor, invoice) & {CAN_ADMIN, CAN_APPROVE}:
        return Decision.allow()
    return Decision.deny(
        TransitionPermissionError, DENIAL_REASONS[CAN_APPROVE]
    )


def get_available_transitions(actor: Actor, invoice: InvoiceSnapshot) -> list:
    """
    Gets a list of available transition actions based on
    the current state and the actor's capabilities.
    """
    action_map = {
        APPROVED_BY_MANAGER: {"action": "approve", "name": "Approve"},
        REJECTED: {"action": "reject", "name": "Reject"},
        PENDING_ADMIN: {
            "action": "send-to-operations-room",
            "name": "Send to The Operations Room",
        },
        READY_FOR_PAYMENT: {
            "action": "ready-for-payment",
            "name": "Mark Ready for Payment",
        },
        PAID: {"action": "mark-paid", "name": "Mark Paid"},
        ARCHIVED: {"action": "archive", "name": "Archive"},
        PENDING_MANAGER: {"action": "resubmit", "name": "Resubmit"},
    }
    if normalize_status(invoice.status) == PENDING_ADMIN:
        action_map[APPROVED_BY_MANAGER] = {
            "action": "return-to-approved",
            "name": "Return to Manager Approved",
        }

    transitions = []
    possible = ALLOWED_TRANSITIONS.get(normalize_status(invoice.status), {})
    for to_status in possible:
        if can_transition(actor, invoice, to_status).allowed:
            transitions.append({"to_status": to_status, **action_map[to_status]})
    return transitions


# --- 6. Transition application ---


def validate_request(
    actor: Actor, invoice: InvoiceSnapshot, request: TransitionRequest
):
    """Checks the fields each edge requires. Raises on the first gap."""
    to_status = request.to_status
    if to_status == REJECTED and not (request.rejection_reason or "").strip():
        raise TransitionValidationError(REJECTION_REASON_MESSAGE)

    is_manager_approval = (
        to_status == APPROVED_BY_MANAGER
        and normalize_status(invoice.status) == PENDING_MANAGER
        and actor.role != ADMIN
    )
    if is_manager_approval and not (
        request.manager_confirmed or invoice.manager_confirmed
    ):
        raise TransitionValidationError(BANK_DETAILS_MESSAGE)


def plan_notifications(from_status: str, to_status: str) -> tuple:
    intent = NOTIFICATION_RULES.get((normalize_status(from_status), to_status))
    return (intent,) if intent else ()


def apply_transition(
    actor: Actor,
    invoice: InvoiceSnapshot,
    request: TransitionRequest,
    *,
    today: date,
) -> TransitionOutcome:
    """
    Authorizes and validates the request, then computes the workflow field
    changes, the audit payload and the notifications to send.
    Raises an InvoiceWorkflowError subclass when the request is refused.
    """
    can_transition(actor, invoice, request.to_status).raise_for_denial()
    validate_request(actor, invoice, request)

    to_status = request.to_status
    changes = {"status": to_status}
    payload = {}

    if to_status == REJECTED:
        reason = request.rejection_reason.strip()
        changes["rejection_reason"] = reason
        payload["rejection_reason"] = reason
    elif to_status == PENDING_MANAGER:
        # Only reachable from rejected: resubmission restarts the SLA clock
        changes["rejection_reason"] = None
        changes["pending_manager_since"] = today

    if to_status == PAID:
        paid_date = request.paid_date or today
        changes["paid_date"] = paid_date
        changes["payment_reference"] = request.payment_reference or None
        payload["paid_date"] = paid_date.isoformat()
        if request.payment_reference:
            payload["payment_reference"] = request.payment_reference

    if request.admin_comment is not None:
        changes["admin_comment"] = request.admin_comment
        payload["admin_comment"] = request.admin_comment

    if request.manager_confirmed is not None:
        changes["manager_confirmed"] = bool(request.manager_confirmed)
        payload["manager_confirmed"] = bool(request.manager_confirmed)

    if request.bulk:
        payload["bulk"] = True

    return TransitionOutcome(
        from_status=invoice.status,
        to_status=to_status,
        changes=changes,
        audit_payload=payload,
        notifications=plan_notifications(invoice.status, to_status),
    )
