"""
Procurement Views.

API views for material requests, purchase requisitions, enquiries,
purchase orders, goods receipts and supplier invoices.

Documents are read through the standard list/retrieve endpoints and
created or moved through @action handlers that call the procurement,
receiving and BOM services.
"""

from rest_framework.generics import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services import procurement_service, receiving_service
from infrastructure.persistence.models import (
    Enquiry,
    GoodsReceipt,
    MaterialRequest,
    PurchaseInvoice,
    PurchaseOrder,
    PurchaseRequisition,
    SupplierQuote,
    User,
)
from ..serializers.base import ActionCommentSerializer, ActionReasonSerializer
from ..serializers.procurement import (
    EnquiryCreateSerializer,
    EnquirySerializer,
    GoodsReceiptCreateSerializer,
    GoodsReceiptDetailSerializer,
    GoodsReceiptListSerializer,
    InspectionSerializer,
    InvoicePaymentSerializer,
    MaterialRequestCreateSerializer,
    MaterialRequestSerializer,
    OrderFromRequisitionSerializer,
    PurchaseInvoiceSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderDetailSerializer,
    PurchaseOrderListSerializer,
    PurchaseOrderTermsSerializer,
    PurchaseRequisitionCreateSerializer,
    PurchaseRequisitionDetailSerializer,
    PurchaseRequisitionListSerializer,
    QuoteInputSerializer,
    SupplierQuoteSerializer,
)
from .base import DocumentViewSet

DOCUMENT_FILTER_BACKENDS = [
    DjangoFilterBackend,
    filters.SearchFilter,
    filters.OrderingFilter,
]


# =============================================================================
# MATERIAL REQUESTS
# =============================================================================

class MaterialRequestViewSet(DocumentViewSet):
    """
    ViewSet for material requests.

    Anyone can raise a request and see their own; purchase staff see all
    and decide on them.

    Endpoints:
    - GET /material-requests/ - list
    - POST /material-requests/ - raise a request
    - POST /material-requests/{id}/approve/
    - POST /material-requests/{id}/reject/ - body: {reason}
    - POST /material-requests/{id}/convert/ - create a purchase requisition
    """

    queryset = MaterialRequest.objects.select_related(
        'requested_by', 'approved_by', 'created_by'
    ).prefetch_related('items', 'items__material')
    required_permissions = {
        'approve': 'purchase:write',
        'reject': 'purchase:write',
        'convert': 'purchase:write',
    }

    serializer_classes = {
        'create': MaterialRequestCreateSerializer,
        'default': MaterialRequestSerializer,
    }

    search_fields = ['number', 'department', 'purpose']
    filterset_fields = ['status', 'urgency', 'department']
    ordering_fields = ['number', 'created_at', 'required_date']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.request.user.has_erp_permission('purchase:read'):
            queryset = queryset.filter(requested_by=self.request.user)
        return queryset

    def create(self, request):
        data = self.validated(MaterialRequestCreateSerializer)
        material_request = procurement_service.create_material_request(user=request.user, **data)
        return self.document_response(material_request, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        material_request = procurement_service.approve_material_request(self.get_object(), request.user)
        return self.document_response(material_request)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        data = self.validated(ActionReasonSerializer)
        material_request = procurement_service.reject_material_request(
            self.get_object(), request.user, data['reason']
        )
        return self.document_response(material_request)

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """Convert an approved request into a purchase requisition."""
        requisition = procurement_service.convert_material_request(self.get_object(), user=request.user)
        return Response(
            PurchaseRequisitionDetailSerializer(requisition, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


# =============================================================================
# PURCHASE REQUISITIONS
# =============================================================================

class PurchaseRequisitionViewSet(DocumentViewSet):
    """
    ViewSet for purchase requisitions.

    Endpoints:
    - GET /purchase-requisitions/ - list (?status=pending_enquiry)
    - POST /purchase-requisitions/ - manual requisition
    - POST /purchase-requisitions/{id}/assign/ - body: {assignee}
    - POST /purchase-requisitions/{id}/cancel/
    - POST /purchase-requisitions/{id}/create_order/ - PO from all lines
    """

    queryset = PurchaseRequisition.objects.select_related(
        'bom', 'material_request', 'requested_by', 'assigned_to', 'created_by'
    ).prefetch_related('items', 'items__material', 'items__suggested_supplier')
    required_permissions = {'read': 'purchase:read', 'write': 'purchase:write'}

    serializer_classes = {
        'list': PurchaseRequisitionListSerializer,
        'retrieve': PurchaseRequisitionDetailSerializer,
        'create': PurchaseRequisitionCreateSerializer,
        'default': PurchaseRequisitionDetailSerializer,
    }

    search_fields = ['number', 'source_reference', 'notes']
    filterset_fields = ['status', 'priority', 'source_type', 'assigned_to']
    ordering_fields = ['number', 'created_at', 'required_date', 'priority']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def create(self, request):
        data = self.validated(PurchaseRequisitionCreateSerializer)
        requisition = procurement_service.create_requisition(user=request.user, **data)
        return self.document_response(requisition, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        requisition = self.get_object()
        assignee = get_object_or_404(User, pk=request.data.get('assignee'), is_active=True)
        procurement_service.assign_requisition(requisition, assignee, user=request.user)
        return self.document_response(requisition)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        requisition = procurement_service.cancel_requisition(self.get_object(), user=request.user)
        return self.document_response(requisition)

    @action(detail=True, methods=['post'])
    def create_order(self, request, pk=None):
        """Draft a purchase order for every line of the requisition."""
        data = self.validated(OrderFromRequisitionSerializer)
        order = procurement_service.create_order_from_requisition(
            self.get_object(), user=request.user, **data
        )
        return Response(
            PurchaseOrderDetailSerializer(order, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


# =============================================================================
# ENQUIRIES
# =============================================================================

class EnquiryViewSet(DocumentViewSet):
    """
    ViewSet for supplier enquiries and their quotes.

    Endpoints:
    - POST /enquiries/ - body: {requisition, suppliers, due_date}
    - POST /enquiries/{id}/record_quote/ - body: {supplier, prices}
    - POST /enquiries/{id}/select_quote/ - body: {quote}
    - POST /enquiries/{id}/create_order/ - PO from the selected quote
    """

    queryset = Enquiry.objects.select_related('requisition', 'created_by').prefetch_related(
        'suppliers', 'quotes', 'quotes__supplier', 'quotes__items'
    )
    required_permissions = {'read': 'purchase:read', 'write': 'purchase:write'}

    serializer_classes = {
        'create': EnquiryCreateSerializer,
        'default': EnquirySerializer,
    }

    search_fields = ['number', 'requisition__number']
    filterset_fields = ['status', 'requisition']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def create(self, request):
        data = self.validated(EnquiryCreateSerializer)
        enquiry = procurement_service.create_enquiry(user=request.user, **data)
        return self.document_response(enquiry, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def record_quote(self, request, pk=None):
        enquiry = self.get_object()
        data = self.validated(QuoteInputSerializer)
        quote = procurement_service.record_quote(enquiry, user=request.user, **data)
        return Response(SupplierQuoteSerializer(quote).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def select_quote(self, request, pk=None):
        enquiry = self.get_object()
        quote = get_object_or_404(SupplierQuote, pk=request.data.get('quote'), enquiry=enquiry)
        procurement_service.select_quote(enquiry, quote, user=request.user)
        return self.document_response(enquiry)

    @action(detail=True, methods=['post'])
    def create_order(self, request, pk=None):
        enquiry = self.get_object()
        quote = get_object_or_404(SupplierQuote, enquiry=enquiry, is_selected=True)
        data = self.validated(PurchaseOrderTermsSerializer)
        order = procurement_service.create_order_from_quote(quote, user=request.user, **data)
        return Response(
            PurchaseOrderDetailSerializer(order, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

class PurchaseOrderViewSet(DocumentViewSet):
    """
    ViewSet for purchase orders.

    Endpoints:
    - GET /purchase-orders/ - list (?status=pending_md_approval)
    - POST /purchase-orders/ - draft an order
    - POST /purchase-orders/{id}/submit/ - auto-approve or send to the MD
    - POST /purchase-orders/{id}/approve/ - body: {comments}
    - POST /purchase-orders/{id}/reject/ - body: {reason}
    - POST /purchase-orders/{id}/mark_ordered/ - sent to supplier
    - POST /purchase-orders/{id}/cancel/
    - POST /purchase-orders/{id}/reopen/ - rejected back to draft
    - GET /purchase-orders/pending_approval/ - orders waiting for the MD
    """

    queryset = PurchaseOrder.objects.select_related(
        'supplier', 'requisition', 'approved_by', 'created_by'
    ).prefetch_related('items', 'items__material', 'approval_steps')
    required_permissions = {
        'read': 'purchase:read',
        'write': 'purchase:write',
        'approve': 'purchase:approve',
        'reject': 'purchase:approve',
    }

    serializer_classes = {
        'list': PurchaseOrderListSerializer,
        'pending_approval': PurchaseOrderListSerializer,
        'retrieve': PurchaseOrderDetailSerializer,
        'create': PurchaseOrderCreateSerializer,
        'default': PurchaseOrderDetailSerializer,
    }

    search_fields = ['number', 'supplier__name', 'supplier__code', 'notes']
    filterset_fields = ['status', 'supplier', 'requires_md_approval', 'requisition']
    ordering_fields = ['number', 'order_date', 'total', 'created_at']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def create(self, request):
        data = self.validated(PurchaseOrderCreateSerializer)
        supplier = data.pop('supplier')
        items = data.pop('items')
        order = procurement_service.create_purchase_order(supplier, items, user=request.user, **data)
        return self.document_response(order, status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def pending_approval(self, request):
        queryset = self.filter_queryset(self.get_queryset()).filter(status='pending_md_approval')
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        order = procurement_service.submit_order(self.get_object(), user=request.user)
        return self.document_response(order)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        data = self.validated(ActionCommentSerializer)
        order = procurement_service.approve_order(self.get_object(), request.user, data['comments'])
        return self.document_response(order)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        data = self.validated(ActionReasonSerializer)
        order = procurement_service.reject_order(self.get_object(), request.user, data['reason'])
        return self.document_response(order)

    @action(detail=True, methods=['post'])
    def mark_ordered(self, request, pk=None):
        order = procurement_service.mark_order_placed(self.get_object(), user=request.user)
        return self.document_response(order)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        order = procurement_service.cancel_order(
            self.get_object(), user=request.user, reason=request.data.get('reason', '')
        )
        return self.document_response(order)

    @action(detail=True, methods=['post'])
    def reopen(self, request, pk=None):
        order = procurement_service.reopen_order(self.get_object(), user=request.user)
        return self.document_response(order)


# =============================================================================
# GOODS RECEIPTS
# =============================================================================

class GoodsReceiptViewSet(DocumentViewSet):
    """
    ViewSet for goods receipts (GRN).

    Endpoints:
    - POST /goods-receipts/ - receive goods against a PO
    - POST /goods-receipts/{id}/send_to_quality/
    - POST /goods-receipts/{id}/inspect/ - body: {items: [{item, accepted_quantity, ...}]}
    - POST /goods-receipts/{id}/post_to_stock/ - add accepted quantities to stock
    - POST /goods-receipts/{id}/complete/
    """

    queryset = GoodsReceipt.objects.select_related(
        'purchase_order', 'purchase_order__supplier', 'received_by', 'inspected_by', 'posted_by'
    ).prefetch_related('items', 'items__material')
    required_permissions = {
        'read': ('inventory:read', 'purchase:read'),
        'write': 'inventory:write',
        'inspect': 'quality:write',
        'send_to_quality': ('inventory:write', 'quality:write'),
    }

    serializer_classes = {
        'list': GoodsReceiptListSerializer,
        'retrieve': GoodsReceiptDetailSerializer,
        'create': GoodsReceiptCreateSerializer,
        'default': GoodsReceiptDetailSerializer,
    }

    search_fields = ['number', 'purchase_order__number', 'supplier_dc_number', 'supplier_invoice_number']
    filterset_fields = ['status', 'purchase_order']
    ordering_fields = ['number', 'received_date', 'created_at']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def create(self, request):
        data = self.validated(GoodsReceiptCreateSerializer)
        order = data.pop('purchase_order')
        lines = data.pop('items')
        receipt = receiving_service.create_goods_receipt(order.pk, lines, user=request.user, **data)
        return self.document_response(receipt, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def send_to_quality(self, request, pk=None):
        receipt = receiving_service.send_to_quality(self.get_object(), user=request.user)
        return self.document_response(receipt)

    @action(detail=True, methods=['post'])
    def inspect(self, request, pk=None):
        receipt = self.get_object()
        serializer = InspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        receipt = receiving_service.inspect_goods_receipt(receipt.pk, serializer.to_results(), request.user)
        return self.document_response(receipt)

    @action(detail=True, methods=['post'])
    def post_to_stock(self, request, pk=None):
        receipt = receiving_service.post_to_stock(self.get_object().pk, user=request.user)
        return self.document_response(receipt)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        receipt = receiving_service.complete_receipt(self.get_object(), user=request.user)
        return self.document_response(receipt)


# =============================================================================
# INVOICES
# =============================================================================

class PurchaseInvoiceViewSet(DocumentViewSet):
    """
    ViewSet for supplier invoices.

    Endpoints:
    - POST /purchase-invoices/ - register an invoice against a PO
    - POST /purchase-invoices/{id}/verify/
    - POST /purchase-invoices/{id}/request_payment/
    - POST /purchase-invoices/{id}/mark_paid/ - body: {amount, reference}
    - POST /purchase-invoices/{id}/dispute/ - body: {reason}
    """

    queryset = PurchaseInvoice.objects.select_related('purchase_order', 'goods_receipt')
    required_permissions = {'read': 'purchase:read', 'write': 'purchase:write'}

    serializer_classes = {
        'default': PurchaseInvoiceSerializer,
    }

    search_fields = ['number', 'supplier_invoice_number', 'purchase_order__number']
    filterset_fields = ['status', 'purchase_order']
    ordering_fields = ['invoice_date', 'due_date', 'total', 'created_at']
    ordering = ['-created_at']
    filter_backends = DOCUMENT_FILTER_BACKENDS

    def create(self, request):
        data = self.validated(PurchaseInvoiceSerializer)
        order = data.pop('purchase_order')
        invoice = procurement_service.create_invoice(
            order,
            data.pop('supplier_invoice_number'),
            data.pop('invoice_date'),
            data.pop('subtotal', 0),
            data.pop('gst_amount', 0),
            user=request.user,
            **data
        )
        return self.document_response(invoice, status.HTTP_201_CREATED)

    def _move(self, action_name, **kwargs):
        invoice = procurement_service.move_invoice(
            self.get_object(), action_name, user=self.request.user, **kwargs
        )
        return self.document_response(invoice)

    @action(detail=True, methods=['post'])
    def verify(self, request, pk=None):
        return self._move('verify')

    @action(detail=True, methods=['post'])
    def request_payment(self, request, pk=None):
        return self._move('request_payment')

    @action(detail=True, methods=['post'])
    def mark_paid(self, request, pk=None):
        data = self.validated(InvoicePaymentSerializer)
        return self._move('mark_paid', **data)

    @action(detail=True, methods=['post'])
    def dispute(self, request, pk=None):
        data = self.validated(ActionReasonSerializer)
        return self._move('dispute', reason=data['reason'])
