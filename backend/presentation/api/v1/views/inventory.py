"""
Inventory Views.

API views for the stock ledger, adjustments, batches, stock alerts and
the supervisor requisition / store issue workflow, returns from jobs and
material reservations.
"""

from django_filters import rest_framework as django_filters
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from application.services import inventory_service, requisition_service
from application.services.audit import log_action
from application.services.notifications import dashboard_changed
from domain.inventory.rules import EXPIRY_WARNING_DAYS
from infrastructure.persistence.models import (
    MaterialIssue,
    MaterialRequisition,
    MaterialReservation,
    MaterialReturn,
    PurchaseOrder,
    StockAdjustment,
    StockAlert,
    StockBatch,
    StockMovement,
)
from ...pagination import LargeResultsSetPagination
from ...permissions import HasERPPermission
from ..serializers.base import ActionCommentSerializer, ActionReasonSerializer
from ..serializers.procurement import MaterialRequestSerializer
from ..serializers.inventory import (
    MaterialIssueSerializer,
    MaterialRequisitionCreateSerializer,
    MaterialRequisitionSerializer,
    MaterialReservationCreateSerializer,
    MaterialReservationSerializer,
    MaterialReturnCreateSerializer,
    MaterialReturnSerializer,
    SnoozeSerializer,
    StockAdjustmentCreateSerializer,
    StockAdjustmentSerializer,
    StockAlertSerializer,
    StockBatchSerializer,
    StockMovementSerializer,
)
from .base import DocumentViewSet, SerializerByActionMixin

FILTER_BACKENDS = [
    DjangoFilterBackend,
    filters.SearchFilter,
    filters.OrderingFilter,
]


class StockMovementFilterSet(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name='performed_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='performed_at', lookup_expr='date__lte')

    class Meta:
        model = StockMovement
        fields = ['material', 'movement_type', 'batch', 'project', 'date_from', 'date_to']


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The stock ledger. Movements are written by stock operations only.

    Endpoints:
    - GET /stock-movements/ - (?material=, ?movement_type=issue, ?date_from=)
    """

    queryset = StockMovement.objects.select_related('material', 'batch', 'performed_by')
    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': ('inventory:read', 'reports:read')}
    pagination_class = LargeResultsSetPagination

    search_fields = ['reference', 'material__code', 'material__name', 'project']
    filterset_class = StockMovementFilterSet
    ordering_fields = ['performed_at', 'quantity']
    ordering = ['-performed_at']
    filter_backends = FILTER_BACKENDS


class StockAdjustmentViewSet(SerializerByActionMixin,
                             mixins.CreateModelMixin,
                             viewsets.ReadOnlyModelViewSet):
    """
    Physical count corrections.

    Endpoints:
    - GET /stock-adjustments/
    - POST /stock-adjustments/ - body: {material, new_quantity, reason, notes}
    """

    queryset = StockAdjustment.objects.select_related('material', 'adjusted_by')
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': 'inventory:read', 'write': 'inventory:write'}

    serializer_classes = {
        'create': StockAdjustmentCreateSerializer,
        'default': StockAdjustmentSerializer,
    }

    search_fields = ['number', 'material__code', 'material__name', 'notes']
    filterset_fields = ['material', 'reason']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def create(self, request, *args, **kwargs):
        serializer = StockAdjustmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        adjustment = inventory_service.adjust_stock(
            data['material'].pk,
            data['new_quantity'],
            reason=data['reason'],
            notes=data['notes'],
            user=request.user,
        )
        return Response(StockAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)


class StockBatchViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Received batches of batch-tracked materials.

    Endpoints:
    - GET /stock-batches/ - (?material=, ?qc_status=, ?in_stock=true)
    - GET /stock-batches/expiring/ - (?days=30)
    - POST /stock-batches/{id}/quarantine/
    - POST /stock-batches/{id}/release/
    """

    queryset = StockBatch.objects.select_related('material', 'goods_receipt').filter(deleted_at__isnull=True)
    serializer_class = StockBatchSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {
        'read': 'inventory:read',
        'quarantine': ('quality:write', 'inventory:write'),
        'release': 'quality:write',
    }

    search_fields = ['batch_number', 'material__code', 'material__name']
    filterset_fields = ['material', 'qc_status', 'goods_receipt']
    ordering_fields = ['received_date', 'expiry_date', 'remaining_quantity']
    ordering = ['received_date']
    filter_backends = FILTER_BACKENDS

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.request.query_params.get('in_stock') in ('true', '1'):
            queryset = queryset.filter(remaining_quantity__gt=0)
        return queryset

    @action(detail=False, methods=['get'])
    def expiring(self, request):
        """Batches with stock left that expire soon or have expired."""
        days = int(request.query_params.get('days', EXPIRY_WARNING_DAYS))
        batches = inventory_service.expiring_batches(days=days)
        return Response(StockBatchSerializer(batches, many=True).data)

    @action(detail=True, methods=['post'])
    def quarantine(self, request, pk=None):
        batch = self.get_object()
        batch.quarantine(user=request.user)
        log_action('status_change', batch, user=request.user, request=request,
                   details={'qc_status': batch.qc_status, 'batch': batch.batch_number})
        return Response(StockBatchSerializer(batch).data)

    @action(detail=True, methods=['post'])
    def release(self, request, pk=None):
        batch = self.get_object()
        batch.release(user=request.user)
        log_action('status_change', batch, user=request.user, request=request,
                   details={'qc_status': batch.qc_status, 'batch': batch.batch_number})
        return Response(StockBatchSerializer(batch).data)


class StockAlertViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Low and out-of-stock alerts.

    Endpoints:
    - GET /stock-alerts/ - open alerts by default (?status=resolved for history)
    - POST /stock-alerts/{id}/acknowledge/
    - POST /stock-alerts/{id}/resolve/ - body: {purchase_order}
    - POST /stock-alerts/{id}/snooze/ - body: {hours}
    - POST /stock-alerts/scan/ - re-evaluate every material now
    """

    queryset = StockAlert.objects.select_related(
        'material', 'acknowledged_by', 'resolved_by', 'purchase_order'
    )
    serializer_class = StockAlertSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {
        'read': ('inventory:read', 'purchase:read'),
        'write': ('inventory:write', 'purchase:write'),
        'scan': 'inventory:write',
    }

    search_fields = ['material__code', 'material__name']
    filterset_fields = ['material', 'level', 'status']
    ordering_fields = ['created_at', 'level', 'current_stock']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'list' and 'status' not in self.request.query_params:
            queryset = queryset.filter(status__in=StockAlert.OPEN_STATUSES)
        return queryset

    def _changed(self, alert, request, **details):
        log_action('status_change', alert, user=request.user, request=request,
                   document_type='stock_alert', details={'status': alert.status, **details})
        dashboard_changed('inventory')
        return Response(StockAlertSerializer(alert).data)

    @action(detail=True, methods=['post'])
    def acknowledge(self, request, pk=None):
        alert = self.get_object().acknowledge(user=request.user)
        return self._changed(alert, request)

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        alert = self.get_object()
        order = None
        if request.data.get('purchase_order'):
            order = get_object_or_404(PurchaseOrder, pk=request.data['purchase_order'])
        alert.resolve(user=request.user, purchase_order=order)
        return self._changed(alert, request, purchase_order=order.number if order else None)

    @action(detail=True, methods=['post'])
    def snooze(self, request, pk=None):
        serializer = SnoozeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        alert = self.get_object().snooze(serializer.validated_data['hours'], user=request.user)
        return self._changed(alert, request, hours=serializer.validated_data['hours'])

    @action(detail=False, methods=['post'])
    def scan(self, request):
        result = inventory_service.scan_stock_alerts()
        if result['raised'] or result['resolved']:
            dashboard_changed('inventory')
        return Response(result)


# =============================================================================
# REQUISITION & ISSUE
# =============================================================================

class MaterialRequisitionViewSet(DocumentViewSet):
    """
    Supervisor requisitions for material from the store.

    Endpoints:
    - POST /material-requisitions/ - raise a requisition
    - POST /material-requisitions/{id}/check_stock/
    - POST /material-requisitions/{id}/approve_for_issue/ - body: {comments}
    - POST /material-requisitions/{id}/issue/ - issue what is in stock
    - POST /material-requisitions/{id}/reject/ - body: {reason}
    - POST /material-requisitions/{id}/send_to_purchase/ - material request for the shortfall
    """

    queryset = MaterialRequisition.objects.select_related('requested_by', 'created_by').prefetch_related(
        'items', 'items__material'
    )
    required_permissions = {
        'read': ('production:read', 'inventory:read'),
        'write': 'inventory:write',
        'create': 'production:write',
    }

    serializer_classes = {
        'create': MaterialRequisitionCreateSerializer,
        'default': MaterialRequisitionSerializer,
    }

    search_fields = ['number', 'project', 'team', 'notes']
    filterset_fields = ['status', 'urgency', 'project', 'team']
    ordering_fields = ['number', 'created_at', 'required_date']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.request.user.has_erp_permission('inventory:read'):
            queryset = queryset.filter(requested_by=self.request.user)
        return queryset

    def create(self, request):
        data = self.validated(MaterialRequisitionCreateSerializer)
        requisition = requisition_service.create_requisition(user=request.user, **data)
        return self.document_response(requisition, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def check_stock(self, request, pk=None):
        requisition = requisition_service.check_stock(self.get_object().pk, user=request.user)
        return self.document_response(requisition)

    @action(detail=True, methods=['post'])
    def approve_for_issue(self, request, pk=None):
        data = self.validated(ActionCommentSerializer)
        requisition = requisition_service.approve_for_issue(
            self.get_object(), user=request.user, note=data['comments']
        )
        return self.document_response(requisition)

    @action(detail=True, methods=['post'])
    def issue(self, request, pk=None):
        material_issue = requisition_service.issue(self.get_object().pk, user=request.user)
        return Response(MaterialIssueSerializer(material_issue).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        data = self.validated(ActionReasonSerializer)
        requisition = requisition_service.reject(self.get_object(), user=request.user, reason=data['reason'])
        return self.document_response(requisition)

    @action(detail=True, methods=['post'])
    def send_to_purchase(self, request, pk=None):
        material_request = requisition_service.send_to_purchase(self.get_object().pk, user=request.user)
        return Response(
            MaterialRequestSerializer(material_request, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class MaterialIssueViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Store issue vouchers.

    Endpoints:
    - GET /material-issues/ - (?requisition=, ?project=)
    """

    queryset = MaterialIssue.objects.select_related(
        'requisition', 'issued_to', 'issued_by'
    ).prefetch_related('items', 'items__material', 'items__batch')
    serializer_class = MaterialIssueSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': ('inventory:read', 'production:read')}

    search_fields = ['number', 'project', 'team', 'requisition__number']
    filterset_fields = ['requisition', 'project', 'team']
    ordering = ['-issued_at']
    filter_backends = FILTER_BACKENDS


# =============================================================================
# RETURNS & RESERVATIONS
# =============================================================================

class MaterialReturnViewSet(SerializerByActionMixin,
                            mixins.CreateModelMixin,
                            viewsets.ReadOnlyModelViewSet):
    """
    Unused material returned from jobs.

    Endpoints:
    - GET /material-returns/ - (?material=, ?condition=, ?job_number=)
    - POST /material-returns/ - body: {material, quantity, job_number, condition, batch_number, remarks}
    """

    queryset = MaterialReturn.objects.select_related('material', 'batch', 'returned_by')
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': 'inventory:read', 'write': 'inventory:write'}

    serializer_classes = {
        'create': MaterialReturnCreateSerializer,
        'default': MaterialReturnSerializer,
    }

    search_fields = ['number', 'job_number', 'material__code', 'material__name']
    filterset_fields = ['material', 'condition', 'job_number']
    ordering = ['-returned_at']
    filter_backends = FILTER_BACKENDS

    def create(self, request, *args, **kwargs):
        serializer = MaterialReturnCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        material_return = inventory_service.return_to_stock(
            data['material'].pk,
            data['quantity'],
            data['job_number'],
            condition=data['condition'],
            batch_number=data['batch_number'],
            remarks=data['remarks'],
            user=request.user,
        )
        return Response(MaterialReturnSerializer(material_return).data, status=status.HTTP_201_CREATED)


class MaterialReservationViewSet(DocumentViewSet):
    """
    Stock blocked for planned jobs.

    Endpoints:
    - POST /material-reservations/ - body: {material, quantity, job_number, production_order}
    - POST /material-reservations/{id}/fulfil/ - issue the reserved quantity
    - POST /material-reservations/{id}/cancel/
    """

    queryset = MaterialReservation.objects.select_related('material', 'reserved_by', 'issue')
    required_permissions = {
        'read': ('inventory:read', 'production:read'),
        'write': 'inventory:write',
    }

    serializer_classes = {
        'create': MaterialReservationCreateSerializer,
        'default': MaterialReservationSerializer,
    }

    search_fields = ['number', 'job_number', 'production_order', 'material__code']
    filterset_fields = ['material', 'status', 'job_number']
    ordering = ['-created_at']
    filter_backends = FILTER_BACKENDS

    def create(self, request):
        data = self.validated(MaterialReservationCreateSerializer)
        reservation = inventory_service.reserve_material(
            data['material'].pk, data['quantity'], data['job_number'],
            production_order=data['production_order'], user=request.user,
        )
        return self.document_response(reservation, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def fulfil(self, request, pk=None):
        material_issue = inventory_service.fulfil_reservation(self.get_object().pk, user=request.user)
        return Response(MaterialIssueSerializer(material_issue).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        reservation = inventory_service.cancel_reservation(self.get_object(), user=request.user)
        return self.document_response(reservation)
