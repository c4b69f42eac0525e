"""
Serializers for the delegations API.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from users.serializers import UserNestedSerializer
from .models import Delegation
from .services import DelegationError, validate_delegation


class DelegationSerializer(serializers.ModelSerializer):
    """Read/write serializer for delegations (admin only)."""

    delegator_id = serializers.PrimaryKeyRelatedField(
        source="delegator",
        queryset=get_user_model().objects.all(),
        write_only=True,
    )
    delegate_id = serializers.PrimaryKeyRelatedField(
        source="delegate",
        queryset=get_user_model().objects.all(),
        write_only=True,
    )
    delegator = UserNestedSerializer(read_only=True)
    delegate = UserNestedSerializer(read_only=True)

    class Meta:
        model = Delegation
        fields = [
            "id",
            "delegator_id",
            "delegate_id",
            "delegator",
            "delegate",
            "valid_from",
            "valid_until",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]

    def validate(self, attrs):
        # Partial updates are checked against the stored values
        instance = self.instance

        def current(name):
            if name in attrs:
                return attrs[name]
            return getattr(instance, name, None)

        try:
            validate_delegation(
                delegator=current("delegator"),
                delegate=current("delegate"),
                valid_from=current("valid_from"),
                valid_until=current("valid_until"),
            )
        except DelegationError as e:
            raise serializers.ValidationError(str(e))
        return attrs
