"""
Tests for the delegations API.
"""

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from rest_framework import status
from rest_framework.test import APIClient

from delegations.models import Delegation
from references.models import Role

DELEGATIONS_URL = reverse("delegations:delegation-list")


def detail_url(delegation_id):
    return reverse("delegations:delegation-detail", args=[delegation_id])


def create_user(email, role_name):
    role, _ = Role.objects.get_or_create(name=role_name)
    return get_user_model().objects.create_user(
        email=email, password="testpass123", role=role
    )


class DelegationApiTests(TestCase):
    """Delegations are managed by admins only."""

    def setUp(self):
        self.client = APIClient()
        self.admin = create_user("admin@example.com", "admin")
        self.manager = create_user("manager@example.com", "manager")
        self.backup = create_user("backup@example.com", "manager")
        self.client.force_authenticate(user=self.admin)

    def test_admin_creates_delegation(self):
        payload = {
            "delegator_id": self.manager.pk,
            "delegate_id": self.backup.pk,
            "valid_from": "2025-07-01",
            "valid_until": "2025-07-10",
        }

        res = self.client.post(DELEGATIONS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["delegator"]["email"], self.manager.email)
        self.assertEqual(res.data["delegate"]["id"], self.backup.pk)
        self.assertTrue(Delegation.objects.filter(delegate=self.backup).exists())

    def test_self_delegation_returns_400(self):
        payload = {
            "delegator_id": self.manager.pk,
            "delegate_id": self.manager.pk,
            "valid_from": "2025-07-01",
            "valid_until": "2025-07-10",
        }

        res = self.client.post(DELEGATIONS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Delegation.objects.exists())

    def test_inverted_window_returns_400(self):
        payload = {
            "delegator_id": self.manager.pk,
            "delegate_id": self.backup.pk,
            "valid_from": "2025-07-10",
            "valid_until": "2025-07-01",
        }

        res = self.client.post(DELEGATIONS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partial_update_checks_stored_window(self):
        delegation = Delegation.objects.create(
            delegator=self.manager,
            delegate=self.backup,
            valid_from="2025-07-05",
            valid_until="2025-07-10",
        )

        res = self.client.patch(
            detail_url(delegation.pk),
            {"valid_until": "2025-07-01"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.manager)

        res = self.client.get(DELEGATIONS_URL)

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
