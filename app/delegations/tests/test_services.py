"""
Tests for the delegation resolver.
"""

from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase

from delegations.models import Delegation
from delegations.services import (
    DelegationError,
    active_delegate_for,
    active_delegators_for,
    validate_delegation,
)

User = get_user_model()


class ActiveDelegateTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.manager = User.objects.create_user(
            email="manager@example.com", password="testpass123"
        )
        cls.backup = User.objects.create_user(
            email="backup@example.com", password="testpass123"
        )
        cls.second_backup = User.objects.create_user(
            email="backup2@example.com", password="testpass123"
        )
        cls.start = date(2025, 6, 1)
        cls.end = date(2025, 6, 14)
        Delegation.objects.create(
            delegator=cls.manager,
            delegate=cls.backup,
            valid_from=cls.start,
            valid_until=cls.end,
        )

    def test_window_is_inclusive(self):
        self.assertEqual(
            active_delegate_for(self.manager.pk, self.start), self.backup.pk
        )
        self.assertEqual(
            active_delegate_for(self.manager.pk, self.end), self.backup.pk
        )

    def test_no_delegate_outside_window(self):
        self.assertIsNone(
            active_delegate_for(self.manager.pk, self.start - timedelta(days=1))
        )
        self.assertIsNone(
            active_delegate_for(self.manager.pk, self.end + timedelta(days=1))
        )

    def test_no_manager_means_no_delegate(self):
        self.assertIsNone(active_delegate_for(None, self.start))

    def test_most_recent_overlapping_delegation_wins(self):
        Delegation.objects.create(
            delegator=self.manager,
            delegate=self.second_backup,
            valid_from=self.start + timedelta(days=3),
            valid_until=self.end + timedelta(days=3),
        )
        overlap = self.start + timedelta(days=5)

        self.assertEqual(
            active_delegate_for(self.manager.pk, overlap), self.second_backup.pk
        )
        self.assertEqual(active_delegators_for(self.second_backup.pk, overlap), [self.manager.pk])
        self.assertEqual(active_delegators_for(self.backup.pk, overlap), [])

    def test_active_delegators_for_delegate(self):
        self.assertEqual(
            active_delegators_for(self.backup.pk, self.start), [self.manager.pk]
        )
        self.assertEqual(
            active_delegators_for(self.backup.pk, self.end + timedelta(days=1)),
            [],
        )


class ValidateDelegationTests(TestCase):

    def test_self_delegation_rejected(self):
        with self.assertRaises(DelegationError):
            validate_delegation(
                delegator=1,
                delegate=1,
                valid_from=date(2025, 1, 1),
                valid_until=date(2025, 1, 2),
            )

    def test_inverted_window_rejected(self):
        with self.assertRaises(DelegationError):
            validate_delegation(
                delegator=1,
                delegate=2,
                valid_from=date(2025, 1, 2),
                valid_until=date(2025, 1, 1),
            )

    def test_single_day_window_accepted(self):
        validate_delegation(
            delegator=1,
            delegate=2,
            valid_from=date(2025, 1, 1),
            valid_until=date(2025, 1, 1),
        )
