"""
Production Views.

API views for finished goods and their quality check.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status
from rest_framework.decorators import action

from application.services import production_service
from infrastructure.persistence.models import FinishedGood
from ..serializers.production import (
    FinishedGoodSerializer,
    MoveToStockSerializer,
    QCDecisionSerializer,
)
from .base import DocumentViewSet


class FinishedGoodViewSet(DocumentViewSet):
    """
    ViewSet for finished goods.

    Endpoints:
    - GET /finished-goods/ - (?status=pending_qc)
    - POST /finished-goods/ - register a produced item, goes to QC
    - POST /finished-goods/{id}/qc/ - body: {passed, notes}
    - POST /finished-goods/{id}/move_to_stock/ - body: {location}
    - POST /finished-goods/{id}/rework/ - failed item back to QC
    """

    queryset = FinishedGood.objects.select_related('bom', 'produced_by', 'qc_inspector')
    required_permissions = {
        'read': ('production:read', 'inventory:read'),
        'write': 'production:write',
        'qc': 'quality:write',
        'move_to_stock': ('production:write', 'inventory:write'),
    }

    serializer_classes = {
        'default': FinishedGoodSerializer,
    }

    search_fields = ['number', 'product_name', 'product_code', 'project', 'serial_number']
    filterset_fields = ['status', 'project', 'bom']
    ordering_fields = ['number', 'produced_at', 'qc_date']
    ordering = ['-produced_at']
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    def create(self, request):
        data = self.validated(FinishedGoodSerializer)
        good = production_service.register_finished_good(user=request.user, **data)
        return self.document_response(good, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def qc(self, request, pk=None):
        """Record the QC verdict; notes are required on failure."""
        good = self.get_object()
        data = self.validated(QCDecisionSerializer)
        if data['passed']:
            production_service.pass_qc(good, request.user, data['notes'])
        else:
            production_service.fail_qc(good, request.user, data['notes'])
        return self.document_response(good)

    @action(detail=True, methods=['post'])
    def move_to_stock(self, request, pk=None):
        data = self.validated(MoveToStockSerializer)
        good = production_service.move_to_stock(self.get_object(), user=request.user, location=data['location'])
        return self.document_response(good)

    @action(detail=True, methods=['post'])
    def rework(self, request, pk=None):
        good = production_service.rework(self.get_object(), user=request.user)
        return self.document_response(good)
