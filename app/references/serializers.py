"""
Serializers for references app.
"""

from rest_framework import serializers

from .models import Department, Program


class DepartmentSerializer(serializers.ModelSerializer):
    """Serializer for Department objects."""

    class Meta:
        model = Department
        fields = ["id", "name"]
        read_only_fields = ["id"]


class ProgramSerializer(serializers.ModelSerializer):
    """Serializer for Program objects."""

    class Meta:
        model = Program
        fields = ["id", "name", "department"]
        read_only_fields = ["id"]
