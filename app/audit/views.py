"""
Views for the audit API.
"""

from rest_framework import viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsUserInRole
from invoices.workflows import ADMIN
from .filters import AuditEventFilter
from .models import AuditEvent
from .serializers import AuditEventSerializer


class AuditEventPagination(PageNumberPagination):
    """Provides pagination for output."""

    page_size = 50
    page_size_query_param = "page_size"


class AuditEventViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin audit log: who changed what, newest first."""

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.select_related("actor")
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated, IsUserInRole.of(ADMIN)]
    pagination_class = AuditEventPagination
    filterset_class = AuditEventFilter
