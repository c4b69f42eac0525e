"""
URL mappings for the delegations app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from delegations import views

router = DefaultRouter()
router.register("delegations", views.DelegationViewSet)

app_name = "delegations"

urlpatterns = [
    path("", include(router.urls)),
]
