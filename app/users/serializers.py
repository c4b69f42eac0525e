"""
Serializers for the user API.
"""

from rest_framework import serializers

from users.models import User


class UserNestedSerializer(serializers.ModelSerializer):
    """Lightweight representation of a user nested in other objects."""

    class Meta:
        model = User
        fields = ["id", "email", "full_name"]
        read_only_fields = fields


class UserProfileSerializer(serializers.ModelSerializer):
    """The acting user's identity as seen by the workflow engine."""

    role = serializers.CharField(source="role_name", read_only=True)
    program_ids = serializers.PrimaryKeyRelatedField(
        source="programs", many=True, read_only=True
    )

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "role",
            "department",
            "program_ids",
            "is_operations_room_member",
        ]
        read_only_fields = fields
