"""
Django admin for approval delegations.
"""

from django.contrib import admin

from .models import Delegation


@admin.register(Delegation)
class DelegationAdmin(admin.ModelAdmin):
    list_display = ("delegator", "delegate", "valid_from", "valid_until")
    list_filter = ("valid_from", "valid_until")
    search_fields = ("delegator__email", "delegate__email")
    autocomplete_fields = ("delegator", "delegate")
