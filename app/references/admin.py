"""
Django admin customization for reference/central taxonomy tables.
"""

from django.contrib import admin

from references import models

admin.site.register(models.Role)


@admin.register(models.Department)
class DepartmentAdmin(admin.ModelAdmin):
    # Needed by autocomplete_fields in InvoiceAdmin
    search_fields = ("name",)
    list_display = ("name", "is_active")


@admin.register(models.Program)
class ProgramAdmin(admin.ModelAdmin):
    search_fields = ("name",)
    list_display = ("name", "department", "is_active")
    list_filter = ("department",)
