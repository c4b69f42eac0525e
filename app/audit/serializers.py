"""
Serializers for the audit API.
"""

from rest_framework import serializers

from users.serializers import UserNestedSerializer
from .models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    """Read-only serializer for audit events."""

    actor = UserNestedSerializer(read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "invoice",
            "actor",
            "event_type",
            "from_status",
            "to_status",
            "payload",
            "created_at",
        ]
        read_only_fields = fields
