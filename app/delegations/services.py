"""
Application layer - resolves and maintains approval delegations.
"""

from django.utils import timezone

from .models import Delegation


class DelegationError(Exception):
    """Custom exception for invalid delegation windows."""

    pass


def active_delegate_for(delegator_id, on_date=None):
    """
    Returns the id of the user standing in for delegator_id on on_date
    (today by default), or None.
    When windows overlap, the most recently created delegation wins.
    """
    if delegator_id is None:
        return None
    on_date = on_date or timezone.localdate()
    delegation = (
        Delegation.objects.active_on(on_date)
        .filter(delegator_id=delegator_id)
        .order_by("-created_at", "-id")
        .first()
    )
    return delegation.delegate_id if delegation else None


def active_delegators_for(delegate_id, on_date=None) -> list:
    """Ids of managers for whom delegate_id currently stands in."""
    on_date = on_date or timezone.localdate()
    candidates = (
        Delegation.objects.active_on(on_date)
        .filter(delegate_id=delegate_id)
        .values_list("delegator_id", flat=True)
        .distinct()
    )
    return [
        delegator_id
        for delegator_id in candidates
        if active_delegate_for(delegator_id, on_date) == delegate_id
    ]


def validate_delegation(*, delegator, delegate, valid_from, valid_until):
    """Raises DelegationError if the grant is not well formed."""
    if delegator == delegate:
        raise DelegationError(
            "Delegator and delegate cannot be the same user"
        )
    if valid_until < valid_from:
        raise DelegationError("valid_until must be on or after valid_from")
