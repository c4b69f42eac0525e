"""
Filters for the audit API.
"""

from django_filters import rest_framework as filters

from .models import AuditEvent


class AuditEventFilter(filters.FilterSet):
    """FilterSet for the AuditEvent model."""

    created_after = filters.DateFilter(
        field_name="created_at",
        lookup_expr="date__gte",
        help_text="Only events on or after this date.",
    )
    created_before = filters.DateFilter(
        field_name="created_at",
        lookup_expr="date__lte",
        help_text="Only events on or before this date.",
    )

    class Meta:
        model = AuditEvent
        fields = ["invoice", "actor", "event_type", "to_status"]
