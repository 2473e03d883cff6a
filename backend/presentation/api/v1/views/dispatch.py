"""
Dispatch Views.

API views for delivery challans and dispatch records.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services import dispatch_service
from infrastructure.persistence.models import DeliveryChallan, DispatchRecord
from ..serializers.dispatch import (
    DeliverSerializer,
    DeliveryChallanCreateSerializer,
    DeliveryChallanSerializer,
    DispatchRecordSerializer,
    TransitSerializer,
)
from .base import DocumentViewSet

FILTER_BACKENDS = [
    DjangoFilterBackend,
    filters.SearchFilter,
    filters.OrderingFilter,
]


class DeliveryChallanViewSet(DocumentViewSet):
    """
    ViewSet for delivery challans (DC-YYYYMMDD-NNN).

    Endpoints:
    - POST /delivery-challans/ - draft a challan
    - POST /delivery-challans/{id}/dispatch/ - goods leave, dispatch record opened
    - POST /delivery-challans/{id}/deliver/ - body: {received_by_name}
    - POST /delivery-challans/{id}/cancel/
    """

    queryset = DeliveryChallan.objects.prefetch_related('items', 'items__finished_good')
    required_permissions = {
        'read': ('inventory:read', 'dispatch:write'),
        'write': 'dispatch:write',
    }

    serializer_classes = {
        'create': DeliveryChallanCreateSerializer,
        'default': DeliveryChallanSerializer,
    }

    search_fields = ['number', 'consignee_name', 'vehicle_number', 'lr_number']
    filterset_fields = ['status', 'reason', 'transport_mode']
    ordering_fields = ['number', 'challan_date', 'created_at']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def create(self, request):
        data = self.validated(DeliveryChallanCreateSerializer)
        items = data.pop('items')
        challan = dispatch_service.create_challan(items, user=request.user, **data)
        return self.document_response(challan, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='dispatch')
    def dispatch_challan(self, request, pk=None):
        challan = dispatch_service.dispatch_challan(self.get_object().pk, user=request.user)
        return self.document_response(challan)

    @action(detail=True, methods=['post'])
    def deliver(self, request, pk=None):
        data = self.validated(DeliverSerializer)
        challan = dispatch_service.deliver_challan(
            self.get_object().pk, user=request.user, received_by_name=data['received_by_name']
        )
        return self.document_response(challan)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        challan = dispatch_service.cancel_challan(self.get_object(), user=request.user)
        return self.document_response(challan)


class DispatchRecordViewSet(DocumentViewSet):
    """
    Shipments to customers.

    Endpoints:
    - POST /dispatch-records/ - record a shipment of a QC-passed good
    - POST /dispatch-records/{id}/start_transit/ - body: {tracking_reference}
    - POST /dispatch-records/{id}/deliver/
    """

    queryset = DispatchRecord.objects.select_related('finished_good', 'challan', 'dispatched_by')
    required_permissions = {
        'read': ('inventory:read', 'dispatch:write'),
        'write': 'dispatch:write',
    }

    serializer_classes = {
        'default': DispatchRecordSerializer,
    }

    search_fields = ['customer', 'destination', 'tracking_reference', 'finished_good__number']
    filterset_fields = ['status', 'finished_good', 'challan']
    ordering_fields = ['dispatch_date', 'delivered_date', 'created_at']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def create(self, request):
        data = self.validated(DispatchRecordSerializer)
        record = dispatch_service.create_dispatch_record(user=request.user, **data)
        return Response(DispatchRecordSerializer(record).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def start_transit(self, request, pk=None):
        data = self.validated(TransitSerializer)
        record = dispatch_service.start_transit(
            self.get_object(), user=request.user, tracking_reference=data['tracking_reference']
        )
        return self.document_response(record)

    @action(detail=True, methods=['post'])
    def deliver(self, request, pk=None):
        record = dispatch_service.mark_delivered(self.get_object(), user=request.user)
        return self.document_response(record)
