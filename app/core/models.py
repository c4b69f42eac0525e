"""
Project-wide abstract base classes.
"""

from django.db import models


class CreatedAtModel(models.Model):
    """Abstract data model for append-only rows, provides created_at."""

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True


class TimestampedModel(CreatedAtModel):
    """Abstract data model, provides created_at, updated_at."""

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
