"""
Data models for approval delegations.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import TimestampedModel


class DelegationQuerySet(models.QuerySet):
    def active_on(self, on_date):
        """Delegations whose inclusive validity window contains on_date."""
        return self.filter(
            Q(valid_from__lte=on_date) & Q(valid_until__gte=on_date)
        )


class Delegation(TimestampedModel):
    """
    A time-boxed grant letting a backup approver act for an absent manager.
    Overlapping windows for one delegator are allowed; the most recently
    created one wins (see delegations.services).
    """

    delegator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="delegations_given",
    )
    delegate = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="delegations_received",
    )
    valid_from = models.DateField()
    valid_until = models.DateField()

    objects = DelegationQuerySet.as_manager()

    class Meta:
        ordering = ["-valid_from"]
        indexes = [
            models.Index(
                fields=["delegator", "valid_from", "valid_until"],
                name="ix_delegation_window",
            )
        ]

    def __str__(self):
        return (
            f"{self.delegator} -> {self.delegate}"
            f" [{self.valid_from}..{self.valid_until}]"
        )
