"""
Views for the invoices APIs.
"""

from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from audit.serializers import AuditEventSerializer
from audit.services import history_for
from .models import Invoice
from . import serializers
from . import services
from .workflows import (
    InvoiceWorkflowError,
    InvoiceNotFoundError,
    InvalidTransitionError,
    TransitionPermissionError,
    TransitionValidationError,
    ConcurrencyConflictError,
)
from .filters import InvoiceFilter

WORKFLOW_ERROR_STATUS = {
    InvoiceNotFoundError: status.HTTP_404_NOT_FOUND,
    TransitionPermissionError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    TransitionValidationError: status.HTTP_400_BAD_REQUEST,
    ConcurrencyConflictError: status.HTTP_409_CONFLICT,
}


def _workflow_error_response(error: InvoiceWorkflowError) -> Response:
    """Translates a Domain layer error into an API response."""
    err_status = WORKFLOW_ERROR_STATUS.get(
        type(error), status.HTTP_400_BAD_REQUEST
    )
    return Response({"error": str(error)}, status=err_status)


class StandardResultsSetPagination(PageNumberPagination):
    """Provides pagination for output."""

    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 100


class InvoiceViewSet(
    mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet
):
    """
    View for invoices APIs. Invoices are never edited directly;
    their lifecycle moves only through the transition actions.
    """

    queryset = Invoice.objects.all()
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filterset_class = InvoiceFilter
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        """Implement data segregation based on user role."""
        user = self.request.user
        queryset = (
            super()
            .get_queryset()
            .select_related(
                "submitter",
                "department",
                "program",
                "workflow",
                "workflow__manager__role",
            )
        )
        visibility_filter = services.get_invoice_visibility_filter(user)
        return queryset.filter(visibility_filter).distinct().order_by("-id")

    def get_serializer_class(self):
        """Return the serializer class for request based on action."""
        if self.action == "list":
            return serializers.InvoiceListSerializer
        if self.action == "create":
            return serializers.InvoiceCreateSerializer
        if self.action == "transition":
            return serializers.TransitionSerializer
        if self.action == "transition_bulk":
            return serializers.BulkTransitionSerializer
        if self.action == "confirm_bank_details":
            return serializers.ConfirmBankDetailsSerializer
        if self.action == "history":
            return AuditEventSerializer

        return serializers.InvoiceDetailSerializer

    def _detail_response(self, invoice, status_code=status.HTTP_200_OK):
        context = self.get_serializer_context()
        context.update(
            services.get_invoice_context(invoice=invoice, user=self.request.user)
        )
        serializer = serializers.InvoiceDetailSerializer(
            invoice, context=context
        )
        return Response(serializer.data, status=status_code)

    def retrieve(self, request, *args, **kwargs):
        """Retrieve a single invoice with the actions open to the user."""
        return self._detail_response(self.get_object())

    @extend_schema(responses=serializers.InvoiceDetailSerializer)
    def create(self, request, *args, **kwargs):
        """Submit a new invoice by calling the service layer."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            invoice = services.create_invoice(
                user=request.user, **serializer.validated_data
            )
        except InvoiceWorkflowError as e:
            return _workflow_error_response(e)
        return self._detail_response(invoice, status.HTTP_201_CREATED)

    @extend_schema(
        request=serializers.TransitionSerializer,
        responses=serializers.TransitionResultSerializer,
    )
    @action(detail=True, methods=["post"])
    def transition(self, request, pk=None):
        """
        Move an invoice to another status.
        Visibility is not required here: the workflow decides who may act.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            workflow = services.transition_invoice(
                invoice_id=int(pk), user=request.user, **serializer.validated_data
            )
        except InvoiceWorkflowError as e:
            return _workflow_error_response(e)
        return Response(
            {"ok": True, "to_status": workflow.status, "version": workflow.version},
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        request=serializers.ConfirmBankDetailsSerializer,
        responses=serializers.BankDetailsResultSerializer,
    )
    @action(detail=True, methods=["post"], url_path="confirm-bank-details")
    def confirm_bank_details(self, request, pk=None):
        """Confirm the bank details without moving the invoice."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            workflow = services.confirm_bank_details(
                invoice_id=int(pk), user=request.user, **serializer.validated_data
            )
        except InvoiceWorkflowError as e:
            return _workflow_error_response(e)
        return Response(
            {
                "ok": True,
                "manager_confirmed": workflow.manager_confirmed,
                "version": workflow.version,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        request=serializers.BulkTransitionSerializer,
        responses=serializers.BulkResultSerializer,
    )
    @action(detail=False, methods=["post"], url_path="transition-bulk")
    def transition_bulk(self, request):
        """
        Apply one transition to many invoices.
        Answers 200 with per-invoice failures; only a malformed batch fails.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        invoice_ids = data.pop("invoice_ids")
        try:
            result = services.bulk_transition(
                invoice_ids=invoice_ids, user=request.user, **data
            )
        except InvoiceWorkflowError as e:
            return _workflow_error_response(e)
        return Response(result, status=status.HTTP_200_OK)

    @extend_schema(responses=AuditEventSerializer(many=True))
    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        """Audit trail of one invoice, oldest first."""
        invoice = self.get_object()
        serializer = AuditEventSerializer(history_for(invoice.pk), many=True)
        return Response(serializer.data)
