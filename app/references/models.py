"""
Reference/central taxonomy tables to support core business apps.
Prevents circular dependencies.
"""

from django.db import models


class Role(models.Model):
    """Support access control and permission management."""

    name = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True, null=True)

    def __str__(self):
        return self.name


class Department(models.Model):
    """Organizational department owning invoices and managers."""

    name = models.CharField(max_length=255, unique=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class Program(models.Model):
    """A program (show, production line) inside a department; managers
    may be responsible for several programs."""

    name = models.CharField(max_length=255)
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="programs",
    )
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name
