"""
Tests for the audit events API.
"""

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from rest_framework import status
from rest_framework.test import APIClient

from audit.services import INVOICE_SUBMITTED, STATUS_CHANGE, record_event
from invoices.models import Invoice
from references.models import Role

AUDIT_EVENTS_URL = reverse("audit:audit-event-list")


def create_user(email, role_name):
    role, _ = Role.objects.get_or_create(name=role_name)
    return get_user_model().objects.create_user(
        email=email, password="testpass123", role=role
    )


class AuditEventApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = create_user("admin@example.com", "admin")
        self.submitter = create_user("submitter@example.com", "submitter")
        self.invoice = Invoice.objects.create(submitter=self.submitter)
        record_event(
            invoice_id=self.invoice.pk,
            actor_id=self.submitter.pk,
            event_type=INVOICE_SUBMITTED,
            to_status="pending_manager",
        )
        record_event(
            invoice_id=self.invoice.pk,
            actor_id=self.admin.pk,
            event_type=STATUS_CHANGE,
            from_status="pending_manager",
            to_status="ready_for_payment",
        )

    def test_admin_lists_events_newest_first(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.get(AUDIT_EVENTS_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 2)
        self.assertEqual(res.data["results"][0]["event_type"], STATUS_CHANGE)

    def test_filter_by_actor(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.get(AUDIT_EVENTS_URL, {"actor": self.submitter.pk})

        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["event_type"], INVOICE_SUBMITTED)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.submitter)

        res = self.client.get(AUDIT_EVENTS_URL)

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_events_are_read_only(self):
        self.client.force_authenticate(user=self.admin)

        res = self.client.post(AUDIT_EVENTS_URL, {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
