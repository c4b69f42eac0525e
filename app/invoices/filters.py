"""
Filters for invoices API.
"""

from django_filters import rest_framework as filters
from .models import Invoice


class InvoiceFilter(filters.FilterSet):
    """FilterSet for the Invoice model."""

    # Filter by the status held on the related workflow row.
    status = filters.CharFilter(
        field_name="workflow__status",
        lookup_expr="iexact",
        help_text="Filter by workflow status (case-insensitive exact).",
    )
    manager = filters.NumberFilter(
        field_name="workflow__manager",
        help_text="Filter by assigned manager id.",
    )

    class Meta:
        model = Invoice
        fields = [
            "invoice_type",
            "department",
            "program",
            "is_imported",
        ]
