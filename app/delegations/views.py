"""
Views for the delegations API.
"""

from rest_framework import viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsUserInRole
from invoices.workflows import ADMIN
from .models import Delegation
from .serializers import DelegationSerializer


class DelegationViewSet(viewsets.ModelViewSet):
    """Admin management of approval delegations."""

    serializer_class = DelegationSerializer
    queryset = Delegation.objects.select_related("delegator", "delegate")
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated, IsUserInRole.of(ADMIN)]
    filterset_fields = ["delegator", "delegate"]
