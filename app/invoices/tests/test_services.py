"""
Tests for the invoice application services.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from audit.models import AuditEvent
from audit import services as audit_services
from delegations.models import Delegation
from invoices import services, workflows
from invoices.models import Invoice, InvoiceWorkflow, SlaConfig
from invoices.workflows import (
    InvoiceNotFoundError,
    InvalidTransitionError,
    TransitionPermissionError,
    TransitionValidationError,
    ConcurrencyConflictError,
)
from notifications.models import Notification, UserNotification
from references.models import Department, Program, Role


def create_user(email, role_name=None, **params):
    """Create and return a new user with the given role name."""
    role = None
    if role_name:
        role, _ = Role.objects.get_or_create(name=role_name)
    return get_user_model().objects.create_user(
        email=email, password="testpass123", role=role, **params
    )


def create_invoice(submitter, manager=None, status=None, **params):
    """Create and return an invoice with its workflow row."""
    workflow_fields = {
        key: params.pop(key)
        for key in ("rejection_reason", "manager_confirmed", "pending_manager_since")
        if key in params
    }
    defaults = {
        "invoice_type": workflows.FREELANCER,
        "invoice_number": "INV-001",
        "gross_amount": Decimal("1200.00"),
    }
    defaults.update(params)
    invoice = Invoice.objects.create(submitter=submitter, **defaults)
    InvoiceWorkflow.objects.create(
        invoice=invoice,
        status=status or workflows.PENDING_MANAGER,
        manager=manager,
        pending_manager_since=workflow_fields.pop(
            "pending_manager_since", timezone.localdate()
        ),
        **workflow_fields,
    )
    return invoice


class ServiceTestCase(TestCase):
    """Common users for the service tests."""

    def setUp(self):
        self.submitter = create_user("submitter@example.com", workflows.SUBMITTER)
        self.manager = create_user("manager@example.com", workflows.MANAGER)
        self.other_manager = create_user("other.mgr@example.com", workflows.MANAGER)
        self.finance = create_user("finance@example.com", workflows.FINANCE)
        self.admin = create_user("admin@example.com", workflows.ADMIN)
        self.viewer = create_user("viewer@example.com", workflows.VIEWER)


class CreateInvoiceTests(ServiceTestCase):
    """Tests for invoice submission."""

    def test_create_invoice_starts_pending_manager(self):
        invoice = services.create_invoice(
            user=self.submitter,
            invoice_type=workflows.GUEST,
            invoice_number="G-7",
        )

        self.assertEqual(invoice.submitter, self.submitter)
        self.assertEqual(invoice.workflow.status, workflows.PENDING_MANAGER)
        self.assertEqual(invoice.workflow.version, 1)
        self.assertEqual(invoice.workflow.pending_manager_since, timezone.localdate())
        event = AuditEvent.objects.get(invoice=invoice)
        self.assertEqual(event.event_type, audit_services.INVOICE_SUBMITTED)
        self.assertEqual(event.to_status, workflows.PENDING_MANAGER)

    def test_manager_picked_by_program_then_department(self):
        department = Department.objects.create(name="News")
        program = Program.objects.create(name="Morning Show", department=department)
        dept_manager = create_user(
            "dept.mgr@example.com", workflows.MANAGER, department=department
        )
        self.other_manager.programs.add(program)

        by_program = services.create_invoice(
            user=self.submitter, department=department, program=program
        )
        by_department = services.create_invoice(
            user=self.submitter, department=department
        )

        self.assertEqual(by_program.workflow.manager, self.other_manager)
        self.assertEqual(by_department.workflow.manager, dept_manager)

    def test_submitter_is_never_picked_as_manager(self):
        invoice = services.create_invoice(user=self.manager)

        self.assertNotEqual(invoice.workflow.manager, self.manager)
        self.assertEqual(invoice.workflow.manager, self.other_manager)

    def test_viewer_cannot_submit(self):
        with self.assertRaises(TransitionPermissionError):
            services.create_invoice(user=self.viewer)
        self.assertFalse(Invoice.objects.exists())


class TransitionInvoiceTests(ServiceTestCase):
    """Tests for the single invoice transition."""

    def setUp(self):
        super().setUp()
        self.invoice = create_invoice(self.submitter, manager=self.manager)

    def test_manager_approves_assigned_invoice(self):
        workflow = services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.manager,
            to_status=workflows.APPROVED_BY_MANAGER,
            manager_confirmed=True,
        )

        self.assertEqual(workflow.status, workflows.APPROVED_BY_MANAGER)
        self.assertEqual(workflow.version, 2)
        self.assertTrue(workflow.manager_confirmed)
        events = AuditEvent.objects.filter(
            invoice=self.invoice, event_type=audit_services.STATUS_CHANGE
        )
        self.assertEqual(events.count(), 1)
        self.assertEqual(events[0].from_status, workflows.PENDING_MANAGER)
        self.assertEqual(events[0].to_status, workflows.APPROVED_BY_MANAGER)
        self.assertEqual(events[0].actor, self.manager)

    def test_reject_without_reason_leaves_status_unchanged(self):
        with self.assertRaises(TransitionValidationError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.manager,
                to_status=workflows.REJECTED,
                rejection_reason="",
            )

        workflow = InvoiceWorkflow.objects.get(pk=self.invoice.pk)
        self.assertEqual(workflow.status, workflows.PENDING_MANAGER)
        self.assertEqual(workflow.version, 1)
        self.assertIsNone(workflow.rejection_reason)

    def test_finance_cannot_pay_pending_manager_invoice(self):
        with self.assertRaises(InvalidTransitionError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.finance,
                to_status=workflows.PAID,
            )

    def test_missing_invoice_raises_not_found(self):
        with self.assertRaises(InvoiceNotFoundError) as ctx:
            services.transition_invoice(
                invoice_id=9999, user=self.admin, to_status=workflows.PAID
            )
        self.assertEqual(str(ctx.exception), "Invoice not found")

    def test_invoice_without_workflow_raises_not_found(self):
        orphan = Invoice.objects.create(submitter=self.submitter)

        with self.assertRaises(InvoiceNotFoundError) as ctx:
            services.transition_invoice(
                invoice_id=orphan.pk, user=self.admin, to_status=workflows.PAID
            )
        self.assertEqual(str(ctx.exception), "Workflow not found")

    def test_rejection_reason_only_while_rejected(self):
        services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.manager,
            to_status=workflows.REJECTED,
            rejection_reason="Missing bank details",
        )
        workflow = InvoiceWorkflow.objects.get(pk=self.invoice.pk)
        self.assertEqual(workflow.status, workflows.REJECTED)
        self.assertEqual(workflow.rejection_reason, "Missing bank details")

        workflow = services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.submitter,
            to_status=workflows.PENDING_MANAGER,
        )
        self.assertEqual(workflow.status, workflows.PENDING_MANAGER)
        self.assertIsNone(workflow.rejection_reason)

    def test_resubmission_twice_fails_cleanly(self):
        rejected = create_invoice(
            self.submitter,
            manager=self.manager,
            status=workflows.REJECTED,
            rejection_reason="Wrong amount",
            pending_manager_since=timezone.localdate() - timedelta(days=10),
        )

        workflow = services.transition_invoice(
            invoice_id=rejected.pk,
            user=self.submitter,
            to_status=workflows.PENDING_MANAGER,
        )
        self.assertIsNone(workflow.rejection_reason)
        self.assertEqual(workflow.pending_manager_since, timezone.localdate())

        with self.assertRaises(InvalidTransitionError):
            services.transition_invoice(
                invoice_id=rejected.pk,
                user=self.submitter,
                to_status=workflows.PENDING_MANAGER,
            )
        after = InvoiceWorkflow.objects.get(pk=rejected.pk)
        self.assertEqual(after.status, workflows.PENDING_MANAGER)
        self.assertEqual(after.version, workflow.version)
        self.assertIsNone(after.rejection_reason)

    def test_legacy_submitted_status_can_be_approved(self):
        legacy = create_invoice(
            self.submitter, manager=self.manager, status=workflows.SUBMITTED
        )

        workflow = services.transition_invoice(
            invoice_id=legacy.pk,
            user=self.manager,
            to_status=workflows.APPROVED_BY_MANAGER,
            manager_confirmed=True,
        )

        self.assertEqual(workflow.status, workflows.APPROVED_BY_MANAGER)
        event = AuditEvent.objects.get(invoice=legacy)
        self.assertEqual(event.from_status, workflows.SUBMITTED)

    def test_expected_version_mismatch_is_a_conflict(self):
        with self.assertRaises(ConcurrencyConflictError) as ctx:
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.admin,
                to_status=workflows.READY_FOR_PAYMENT,
                expected_version=7,
            )
        self.assertIn("modified by another user", str(ctx.exception))
        self.assertEqual(
            InvoiceWorkflow.objects.get(pk=self.invoice.pk).status,
            workflows.PENDING_MANAGER,
        )

    def test_lost_compare_and_set_is_a_conflict(self):
        with patch.object(InvoiceWorkflow.objects, "filter") as mock_filter:
            mock_filter.return_value.update.return_value = 0
            with self.assertRaises(ConcurrencyConflictError):
                services.transition_invoice(
                    invoice_id=self.invoice.pk,
                    user=self.admin,
                    to_status=workflows.READY_FOR_PAYMENT,
                )
        self.assertFalse(
            AuditEvent.objects.filter(
                event_type=audit_services.STATUS_CHANGE
            ).exists()
        )

    def test_audit_failure_does_not_fail_transition(self):
        with patch.object(
            AuditEvent.objects, "create", side_effect=DatabaseError("disk full")
        ):
            with self.assertLogs("audit.services", level="ERROR"):
                workflow = services.transition_invoice(
                    invoice_id=self.invoice.pk,
                    user=self.admin,
                    to_status=workflows.READY_FOR_PAYMENT,
                )

        self.assertEqual(workflow.status, workflows.READY_FOR_PAYMENT)
        self.assertFalse(AuditEvent.objects.exists())

    def test_notifications_queued_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.manager,
                to_status=workflows.APPROVED_BY_MANAGER,
                manager_confirmed=True,
            )

        notification = Notification.objects.get(entity_id=self.invoice.pk)
        self.assertEqual(notification.event_type, workflows.MANAGER_APPROVED_EVENT)
        self.assertEqual(notification.triggered_by, self.manager)
        recipients = set(
            UserNotification.objects.filter(
                notification=notification
            ).values_list("user", flat=True)
        )
        self.assertEqual(
            recipients, {self.submitter.pk, self.finance.pk, self.admin.pk}
        )

    def test_notification_failure_does_not_fail_transition(self):
        with patch(
            "invoices.services.notifications.notify",
            side_effect=RuntimeError("mail server down"),
        ):
            with self.assertLogs("invoices.services", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    workflow = services.transition_invoice(
                        invoice_id=self.invoice.pk,
                        user=self.manager,
                        to_status=workflows.REJECTED,
                        rejection_reason="Duplicate",
                    )

        self.assertEqual(workflow.status, workflows.REJECTED)
        self.assertEqual(
            InvoiceWorkflow.objects.get(pk=self.invoice.pk).status,
            workflows.REJECTED,
        )


class DelegatedTransitionTests(ServiceTestCase):
    """A delegate acts for the delegator only inside the window."""

    def setUp(self):
        super().setUp()
        self.today = timezone.localdate()
        self.invoice = create_invoice(self.submitter, manager=self.manager)
        Delegation.objects.create(
            delegator=self.manager,
            delegate=self.other_manager,
            valid_from=self.today - timedelta(days=3),
            valid_until=self.today,
        )

    def test_delegate_can_approve_inside_window(self):
        workflow = services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.other_manager,
            to_status=workflows.APPROVED_BY_MANAGER,
            manager_confirmed=True,
            on_date=self.today,
        )

        self.assertEqual(workflow.status, workflows.APPROVED_BY_MANAGER)

    def test_delegate_denied_day_after_window(self):
        with self.assertRaises(TransitionPermissionError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.other_manager,
                to_status=workflows.APPROVED_BY_MANAGER,
                manager_confirmed=True,
                on_date=self.today + timedelta(days=1),
            )

    def test_delegate_denied_before_window(self):
        with self.assertRaises(TransitionPermissionError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.other_manager,
                to_status=workflows.REJECTED,
                rejection_reason="Not ours",
                on_date=self.today - timedelta(days=4),
            )

    def test_delegate_cannot_approve_own_invoice(self):
        own = create_invoice(self.other_manager, manager=self.manager)

        with self.assertRaises(TransitionPermissionError) as ctx:
            services.transition_invoice(
                invoice_id=own.pk,
                user=self.other_manager,
                to_status=workflows.APPROVED_BY_MANAGER,
                manager_confirmed=True,
                on_date=self.today,
            )
        self.assertEqual(str(ctx.exception), workflows.SELF_APPROVAL_MESSAGE)


    def test_delegate_can_reject_inside_window(self):
        workflow = services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.other_manager,
            to_status=workflows.REJECTED,
            rejection_reason="Duplicate of INV-000",
            on_date=self.today,
        )

        self.assertEqual(workflow.status, workflows.REJECTED)
        self.assertEqual(workflow.rejection_reason, "Duplicate of INV-000")
        event = AuditEvent.objects.get(
            invoice=self.invoice, event_type=audit_services.STATUS_CHANGE
        )
        self.assertEqual(event.actor, self.other_manager)

    def test_delegate_has_no_more_rights_than_delegator(self):
        for user in (self.manager, self.other_manager):
            with self.subTest(user=user.email):
                with self.assertRaises(TransitionPermissionError) as ctx:
                    services.transition_invoice(
                        invoice_id=self.invoice.pk,
                        user=user,
                        to_status=workflows.READY_FOR_PAYMENT,
                        on_date=self.today,
                    )
                self.assertEqual(
                    str(ctx.exception),
                    workflows.DENIAL_REASONS[workflows.CAN_ADMIN],
                )
        self.assertEqual(
            InvoiceWorkflow.objects.get(pk=self.invoice.pk).status,
            workflows.PENDING_MANAGER,
        )

    def test_delegate_reject_denied_day_after_window(self):
        with self.assertRaises(TransitionPermissionError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.other_manager,
                to_status=workflows.REJECTED,
                rejection_reason="Too late",
                on_date=self.today + timedelta(days=1),
            )
        self.assertFalse(
            AuditEvent.objects.filter(
                invoice=self.invoice, event_type=audit_services.STATUS_CHANGE
            ).exists()
        )

    def test_delegate_denied_once_delegator_loses_manager_role(self):
        self.manager.role = Role.objects.get(name=workflows.FINANCE)
        self.manager.save()

        with self.assertRaises(TransitionPermissionError):
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.other_manager,
                to_status=workflows.APPROVED_BY_MANAGER,
                manager_confirmed=True,
                on_date=self.today,
            )

    def test_delegate_can_confirm_bank_details(self):
        workflow = services.confirm_bank_details(
            invoice_id=self.invoice.pk, user=self.other_manager, on_date=self.today
        )

        self.assertTrue(workflow.manager_confirmed)


class ConfirmBankDetailsTests(ServiceTestCase):
    """Bank details confirmed ahead of the approval itself."""

    def setUp(self):
        super().setUp()
        self.invoice = create_invoice(self.submitter, manager=self.manager)

    def test_confirm_then_approve_without_flag(self):
        workflow = services.confirm_bank_details(
            invoice_id=self.invoice.pk, user=self.manager
        )

        self.assertTrue(workflow.manager_confirmed)
        self.assertEqual(workflow.status, workflows.PENDING_MANAGER)
        self.assertEqual(workflow.version, 2)
        event = AuditEvent.objects.get(
            invoice=self.invoice,
            event_type=audit_services.BANK_DETAILS_CONFIRMED,
        )
        self.assertEqual(event.actor, self.manager)
        self.assertEqual(event.to_status, workflows.PENDING_MANAGER)

        workflow = services.transition_invoice(
            invoice_id=self.invoice.pk,
            user=self.manager,
            to_status=workflows.APPROVED_BY_MANAGER,
            expected_version=2,
        )

        self.assertEqual(workflow.status, workflows.APPROVED_BY_MANAGER)
        self.assertEqual(workflow.version, 3)

    def test_approval_without_confirmation_still_refused(self):
        with self.assertRaises(TransitionValidationError) as ctx:
            services.transition_invoice(
                invoice_id=self.invoice.pk,
                user=self.manager,
                to_status=workflows.APPROVED_BY_MANAGER,
            )
        self.assertEqual(str(ctx.exception), workflows.BANK_DETAILS_MESSAGE)

    def test_non_approvers_cannot_confirm(self):
        for user in (self.other_manager, self.finance, self.viewer, self.submitter):
            with self.subTest(user=user.email):
                with self.assertRaises(TransitionPermissionError):
                    services.confirm_bank_details(
                        invoice_id=self.invoice.pk, user=user
                    )
        workflow = InvoiceWorkflow.objects.get(pk=self.invoice.pk)
        self.assertFalse(workflow.manager_confirmed)
        self.assertEqual(workflow.version, 1)
        self.assertFalse(
            AuditEvent.objects.filter(
                event_type=audit_services.BANK_DETAILS_CONFIRMED
            ).exists()
        )

    def test_confirm_outside_pending_manager_is_invalid(self):
        approved = create_invoice(
            self.submitter,
            manager=self.manager,
            status=workflows.APPROVED_BY_MANAGER,
            invoice_number="INV-002",
        )

        with self.assertRaises(InvalidTransitionError):
            services.confirm_bank_details(invoice_id=approved.pk, user=self.manager)

    def test_confirm_checks_expected_version(self):
        with self.assertRaises(ConcurrencyConflictError):
            services.confirm_bank_details(
                invoice_id=self.invoice.pk, user=self.manager, expected_version=5
            )
        self.assertFalse(
            InvoiceWorkflow.objects.get(pk=self.invoice.pk).manager_confirmed
        )

    def test_confirm_missing_invoice_raises_not_found(self):
        with self.assertRaises(InvoiceNotFoundError):
            services.confirm_bank_details(invoice_id=999999, user=self.manager)


class BulkTransitionTests(ServiceTestCase):
    """Tests for bulk transitions."""

    def test_bulk_isolates_failures(self):
        ready = [
            create_invoice(
                self.submitter,
                manager=self.manager,
                status=workflows.READY_FOR_PAYMENT,
                invoice_number=f"R-{i}",
            )
            for i in range(7)
        ]
        pending = [
            create_invoice(
                self.submitter, manager=self.manager, invoice_number=f"P-{i}"
            )
            for i in range(3)
        ]
        ids = [invoice.pk for invoice in ready + pending]

        result = services.bulk_transition(
            invoice_ids=ids,
            user=self.finance,
            to_status=workflows.PAID,
            payment_reference="BATCH-42",
        )

        self.assertEqual(result["success"], 7)
        self.assertEqual(len(result["failed"]), 3)
        self.assertEqual(
            {item["id"] for item in result["failed"]},
            {invoice.pk for invoice in pending},
        )
        self.assertIn("Invalid transition", result["failed"][0]["error"])
        self.assertEqual(
            InvoiceWorkflow.objects.filter(
                status=workflows.PAID, payment_reference="BATCH-42"
            ).count(),
            7,
        )
        event = AuditEvent.objects.filter(invoice=ready[0]).get()
        self.assertTrue(event.payload["bulk"])

    def test_bulk_reports_missing_invoice(self):
        result = services.bulk_transition(
            invoice_ids=[424242], user=self.admin, to_status=workflows.PAID
        )

        self.assertEqual(result["success"], 0)
        self.assertEqual(
            result["failed"], [{"id": 424242, "error": "Invoice not found"}]
        )

    def test_bulk_applies_self_approval_law(self):
        own = create_invoice(self.manager, manager=self.manager)

        result = services.bulk_transition(
            invoice_ids=[own.pk],
            user=self.manager,
            to_status=workflows.APPROVED_BY_MANAGER,
            manager_confirmed=True,
        )

        self.assertEqual(result["failed"][0]["error"], workflows.SELF_APPROVAL_MESSAGE)

    def test_bulk_rejects_empty_and_oversized_batches(self):
        with self.assertRaises(TransitionValidationError):
            services.bulk_transition(
                invoice_ids=[], user=self.admin, to_status=workflows.PAID
            )
        with self.assertRaises(TransitionValidationError):
            services.bulk_transition(
                invoice_ids=list(range(1, services.MAX_BULK_INVOICES + 2)),
                user=self.admin,
                to_status=workflows.PAID,
            )

    def test_bulk_records_unexpected_errors_per_invoice(self):
        invoice = create_invoice(
            self.submitter, manager=self.manager, status=workflows.READY_FOR_PAYMENT
        )

        with patch(
            "invoices.services.build_snapshot", side_effect=RuntimeError("boom")
        ):
            with self.assertLogs("invoices.services", level="ERROR"):
                result = services.bulk_transition(
                    invoice_ids=[invoice.pk],
                    user=self.admin,
                    to_status=workflows.PAID,
                )

        self.assertEqual(result["success"], 0)
        self.assertEqual(result["failed"][0]["id"], invoice.pk)


class SlaReminderTests(ServiceTestCase):
    """Tests for SLA reminders on invoices waiting for their manager."""

    def setUp(self):
        super().setUp()
        self.today = timezone.localdate()
        self.overdue = create_invoice(
            self.submitter,
            manager=self.manager,
            pending_manager_since=self.today - timedelta(days=6),
        )
        self.fresh = create_invoice(
            self.submitter,
            manager=self.manager,
            pending_manager_since=self.today - timedelta(days=1),
        )

    def test_reminder_queued_once_per_overdue_invoice(self):
        self.assertEqual(services.send_sla_reminders(today=self.today), 1)
        self.assertEqual(services.send_sla_reminders(today=self.today), 0)

        reminder = Notification.objects.get(
            event_type=Notification.EventType.SLA_REMINDER
        )
        self.assertEqual(reminder.entity_id, self.overdue.pk)
        self.assertEqual(reminder.payload["days_pending"], 6)
        self.assertTrue(
            UserNotification.objects.filter(
                notification=reminder, user=self.manager
            ).exists()
        )

    def test_sla_days_read_from_config(self):
        SlaConfig.objects.create(key="manager_sla_days", value_int=1)

        self.assertEqual(services.send_sla_reminders(today=self.today), 2)

    def test_reminder_closed_when_invoice_leaves_manager_stage(self):
        services.send_sla_reminders(today=self.today)

        with self.captureOnCommitCallbacks(execute=True):
            services.transition_invoice(
                invoice_id=self.overdue.pk,
                user=self.manager,
                to_status=workflows.APPROVED_BY_MANAGER,
                manager_confirmed=True,
            )

        reminder = Notification.objects.get(
            event_type=Notification.EventType.SLA_REMINDER
        )
        self.assertFalse(reminder.active)
