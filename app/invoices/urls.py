"""
URL mappings for the invoices app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from invoices import views

router = DefaultRouter()
router.register("invoices", views.InvoiceViewSet)

app_name = "invoices"

urlpatterns = [
    path("", include(router.urls)),
]
