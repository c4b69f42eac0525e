"""
Serializers for invoices API.
"""

from rest_framework import serializers

from invoices.models import Invoice, InvoiceWorkflow, InvoiceStatus
from users.serializers import UserNestedSerializer
from references.serializers import DepartmentSerializer, ProgramSerializer


class InvoiceWorkflowSerializer(serializers.ModelSerializer):
    """Serializer for the workflow row of an invoice."""

    manager = UserNestedSerializer(read_only=True)

    class Meta:
        model = InvoiceWorkflow
        fields = [
            "status",
            "manager",
            "rejection_reason",
            "admin_comment",
            "payment_reference",
            "paid_date",
            "pending_manager_since",
            "manager_confirmed",
            "version",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceListSerializer(serializers.ModelSerializer):
    """Serializer for the invoice LIST view (lightweight)."""

    status = serializers.CharField(source="workflow.status", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "invoice_type",
            "status",
            "gross_amount",
            "currency",
            "created_at",
        ]
        read_only_fields = ["id"]


class InvoiceDetailSerializer(InvoiceListSerializer):
    """Serializer for the invoice DETAIL view, with contextual actions."""

    submitter = UserNestedSerializer(read_only=True)
    department = DepartmentSerializer(read_only=True)
    program = ProgramSerializer(read_only=True)
    workflow = InvoiceWorkflowSerializer(read_only=True)

    # --- Contextual Fields ---
    available_transitions = serializers.SerializerMethodField()

    class Meta(InvoiceListSerializer.Meta):
        fields = InvoiceListSerializer.Meta.fields + [
            "submitter",
            "department",
            "program",
            "service_description",
            "is_imported",
            "updated_at",
            "workflow",
            "available_transitions",
        ]

    def get_available_transitions(self, obj):
        # Read from context (populated by ViewSet)
        return self.context.get("available_transitions", [])


class InvoiceCreateSerializer(serializers.ModelSerializer):
    """Serializer for the submission of a new invoice."""

    class Meta:
        model = Invoice
        fields = [
            "invoice_type",
            "department",
            "program",
            "service_description",
            "invoice_number",
            "gross_amount",
            "currency",
        ]

    def validate(self, attrs):
        program = attrs.get("program")
        department = attrs.get("department")
        if (
            program
            and department
            and program.department_id
            and program.department_id != department.pk
        ):
            raise serializers.ValidationError(
                {"program": "Program does not belong to this department."}
            )
        return attrs


class TransitionFieldsSerializer(serializers.Serializer):
    """Fields accepted by every transition request."""

    to_status = serializers.ChoiceField(choices=InvoiceStatus.choices)
    rejection_reason = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=2000
    )
    payment_reference = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=255
    )
    paid_date = serializers.DateField(required=False, allow_null=True)
    manager_confirmed = serializers.BooleanField(
        required=False, allow_null=True
    )
    admin_comment = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=2000
    )


class TransitionSerializer(TransitionFieldsSerializer):
    """Serializer to validate a single transition request."""

    expected_version = serializers.IntegerField(required=False, min_value=1)


class BulkTransitionSerializer(TransitionFieldsSerializer):
    """Serializer to validate a bulk transition request."""

    invoice_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=True
    )


class TransitionResultSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    to_status = serializers.CharField()
    version = serializers.IntegerField()


class ConfirmBankDetailsSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(required=False, min_value=1)


class BankDetailsResultSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    manager_confirmed = serializers.BooleanField()
    version = serializers.IntegerField()


class BulkFailureSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    error = serializers.CharField()


class BulkResultSerializer(serializers.Serializer):
    success = serializers.IntegerField()
    failed = BulkFailureSerializer(many=True)
