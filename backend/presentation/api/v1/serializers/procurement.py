"""
Procurement API Serializers.

Serializers for material requests, purchase requisitions, enquiries,
purchase orders, goods receipts and purchase invoices.

Documents are created through the procurement services; the *Create
serializers only validate input for them.
"""

from rest_framework import serializers

from domain.shared.value_objects import Priority, Urgency
from infrastructure.persistence.models import (
    ApprovalStep,
    Enquiry,
    GoodsReceipt,
    GoodsReceiptItem,
    Material,
    MaterialRequest,
    MaterialRequestItem,
    PurchaseInvoice,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseRequisition,
    PurchaseRequisitionItem,
    Supplier,
    SupplierQuote,
    SupplierQuoteItem,
)
from .base import BaseModelSerializer, DocumentSerializer
from .catalog import MaterialMinimalSerializer


class PositiveQuantityField(serializers.DecimalField):
    def __init__(self, **kwargs):
        kwargs.setdefault('max_digits', 15)
        kwargs.setdefault('decimal_places', 3)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than zero.')
        return value


# =============================================================================
# MATERIAL REQUESTS
# =============================================================================

class MaterialRequestItemSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)

    class Meta:
        model = MaterialRequestItem
        fields = ['id', 'material', 'material_detail', 'quantity', 'unit', 'notes']
        read_only_fields = fields


class MaterialRequestSerializer(DocumentSerializer):
    items = MaterialRequestItemSerializer(many=True, read_only=True)
    requested_by = serializers.StringRelatedField(read_only=True)
    approved_by = serializers.StringRelatedField(read_only=True)
    priority = serializers.CharField(source='priority.value', read_only=True)

    class Meta:
        model = MaterialRequest
        fields = [
            'id', 'number', 'requested_by', 'department', 'urgency', 'priority',
            'required_date', 'purpose', 'status', 'status_display',
            'approved_by', 'approved_at', 'rejection_reason',
            'source_requisition', 'items', 'created_by', 'created_at',
        ]
        read_only_fields = fields


class MaterialRequestItemInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    quantity = PositiveQuantityField()
    unit = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialRequestCreateSerializer(serializers.Serializer):
    items = MaterialRequestItemInputSerializer(many=True, allow_empty=False)
    department = serializers.CharField(required=False, allow_blank=True, default='')
    urgency = serializers.ChoiceField(choices=[u.value for u in Urgency], default=Urgency.NORMAL.value)
    required_date = serializers.DateField(required=False, allow_null=True, default=None)
    purpose = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# PURCHASE REQUISITIONS
# =============================================================================

class PurchaseRequisitionItemSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    suggested_supplier_name = serializers.CharField(source='suggested_supplier.name', read_only=True, default=None)

    class Meta:
        model = PurchaseRequisitionItem
        fields = [
            'id', 'material', 'material_detail', 'quantity', 'unit',
            'estimated_unit_price', 'estimated_total',
            'suggested_supplier', 'suggested_supplier_name', 'notes',
        ]
        read_only_fields = fields


class PurchaseRequisitionListSerializer(DocumentSerializer):
    assigned_to = serializers.StringRelatedField(read_only=True)
    estimated_total = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseRequisition
        fields = [
            'id', 'number', 'source_type', 'source_reference', 'priority',
            'status', 'status_display', 'assigned_to', 'required_date',
            'estimated_total', 'created_at',
        ]
        read_only_fields = fields


class PurchaseRequisitionDetailSerializer(PurchaseRequisitionListSerializer):
    items = PurchaseRequisitionItemSerializer(many=True, read_only=True)
    requested_by = serializers.StringRelatedField(read_only=True)

    class Meta(PurchaseRequisitionListSerializer.Meta):
        fields = PurchaseRequisitionListSerializer.Meta.fields + [
            'bom', 'material_request', 'requested_by', 'notes', 'items', 'created_by',
        ]
        read_only_fields = fields


class PurchaseRequisitionItemInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    quantity = PositiveQuantityField()
    unit = serializers.CharField(required=False, allow_blank=True, default='')
    estimated_unit_price = serializers.DecimalField(
        max_digits=15, decimal_places=2, min_value=0, required=False, allow_null=True, default=None
    )
    suggested_supplier = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.all(), required=False, allow_null=True, default=None
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PurchaseRequisitionCreateSerializer(serializers.Serializer):
    items = PurchaseRequisitionItemInputSerializer(many=True, allow_empty=False)
    priority = serializers.ChoiceField(choices=[p.value for p in Priority], default=Priority.NORMAL.value)
    required_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# ENQUIRIES & QUOTES
# =============================================================================

class SupplierQuoteItemSerializer(BaseModelSerializer):
    material = serializers.CharField(source='requisition_item.material.code', read_only=True)
    line_total = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = SupplierQuoteItem
        fields = ['id', 'requisition_item', 'material', 'quantity', 'unit_price', 'line_total']
        read_only_fields = fields


class SupplierQuoteSerializer(BaseModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    items = SupplierQuoteItemSerializer(many=True, read_only=True)
    total = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = SupplierQuote
        fields = [
            'id', 'enquiry', 'supplier', 'supplier_name', 'quote_reference',
            'delivery_days', 'valid_until', 'is_selected', 'notes', 'total', 'items',
        ]
        read_only_fields = fields


class EnquirySerializer(DocumentSerializer):
    quotes = SupplierQuoteSerializer(many=True, read_only=True)
    requisition_number = serializers.CharField(source='requisition.number', read_only=True)

    class Meta:
        model = Enquiry
        fields = [
            'id', 'number', 'requisition', 'requisition_number', 'suppliers',
            'due_date', 'status', 'status_display', 'notes', 'quotes', 'created_at',
        ]
        read_only_fields = fields


class EnquiryCreateSerializer(serializers.Serializer):
    requisition = serializers.PrimaryKeyRelatedField(queryset=PurchaseRequisition.objects.all())
    suppliers = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all(), many=True, allow_empty=False)
    due_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class QuoteInputSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    prices = serializers.DictField(
        child=serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0),
        allow_empty=False,
        help_text='Unit price per requisition item id'
    )
    quote_reference = serializers.CharField(required=False, allow_blank=True, default='')
    delivery_days = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)
    valid_until = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

class PurchaseOrderItemSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    line_total = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    pending_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'material', 'material_detail', 'requisition_item', 'description',
            'quantity', 'unit', 'unit_price', 'line_total',
            'received_quantity', 'pending_quantity',
        ]
        read_only_fields = fields


class ApprovalStepSerializer(serializers.ModelSerializer):
    approver = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = ApprovalStep
        fields = ['id', 'role', 'approver', 'decision', 'comments', 'amount', 'decided_at']
        read_only_fields = fields


class PurchaseOrderListSerializer(DocumentSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'number', 'supplier', 'supplier_name', 'status', 'status_display',
            'order_date', 'expected_delivery_date', 'subtotal', 'gst_amount', 'total',
            'requires_md_approval', 'created_at',
        ]
        read_only_fields = fields


class PurchaseOrderDetailSerializer(PurchaseOrderListSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    approval_steps = ApprovalStepSerializer(many=True, read_only=True)
    approved_by = serializers.StringRelatedField(read_only=True)
    requisition_number = serializers.CharField(source='requisition.number', read_only=True, default=None)

    class Meta(PurchaseOrderListSerializer.Meta):
        fields = PurchaseOrderListSerializer.Meta.fields + [
            'requisition', 'requisition_number', 'enquiry',
            'delivery_address', 'payment_terms', 'gst_rate',
            'submitted_at', 'approved_by', 'approved_at', 'rejection_reason',
            'ordered_at', 'notes', 'items', 'approval_steps', 'created_by', 'updated_at',
        ]
        read_only_fields = fields


class PurchaseOrderItemInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    quantity = PositiveQuantityField()
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0)
    unit = serializers.CharField(required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    requisition_item = serializers.PrimaryKeyRelatedField(
        queryset=PurchaseRequisitionItem.objects.all(), required=False, allow_null=True, default=None
    )


class PurchaseOrderTermsSerializer(serializers.Serializer):
    expected_delivery_date = serializers.DateField(required=False, allow_null=True, default=None)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
    payment_terms = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PurchaseOrderCreateSerializer(PurchaseOrderTermsSerializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    items = PurchaseOrderItemInputSerializer(many=True, allow_empty=False)
    requisition = serializers.PrimaryKeyRelatedField(
        queryset=PurchaseRequisition.objects.all(), required=False, allow_null=True, default=None
    )
    gst_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, allow_null=True, default=None
    )


class OrderFromRequisitionSerializer(PurchaseOrderTermsSerializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    unit_prices = serializers.DictField(
        child=serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0),
        required=False,
        default=dict,
    )


# =============================================================================
# GOODS RECEIPTS
# =============================================================================

class GoodsReceiptItemSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)

    class Meta:
        model = GoodsReceiptItem
        fields = [
            'id', 'purchase_order_item', 'material', 'material_detail',
            'ordered_quantity', 'received_quantity', 'accepted_quantity', 'rejected_quantity',
            'quality_status', 'rejection_reason', 'batch_number', 'expiry_date',
        ]
        read_only_fields = fields


class GoodsReceiptListSerializer(DocumentSerializer):
    order_number = serializers.CharField(source='purchase_order.number', read_only=True)
    supplier_name = serializers.CharField(source='purchase_order.supplier.name', read_only=True)

    class Meta:
        model = GoodsReceipt
        fields = [
            'id', 'number', 'purchase_order', 'order_number', 'supplier_name',
            'status', 'status_display', 'received_date', 'created_at',
        ]
        read_only_fields = fields


class GoodsReceiptDetailSerializer(GoodsReceiptListSerializer):
    items = GoodsReceiptItemSerializer(many=True, read_only=True)
    received_by = serializers.StringRelatedField(read_only=True)
    inspected_by = serializers.StringRelatedField(read_only=True)
    posted_by = serializers.StringRelatedField(read_only=True)

    class Meta(GoodsReceiptListSerializer.Meta):
        fields = GoodsReceiptListSerializer.Meta.fields + [
            'received_by', 'vehicle_number', 'supplier_dc_number', 'supplier_invoice_number',
            'inspected_by', 'inspected_at', 'posted_by', 'posted_at', 'notes', 'items',
        ]
        read_only_fields = fields


class GoodsReceiptLineInputSerializer(serializers.Serializer):
    purchase_order_item = serializers.UUIDField()
    received_quantity = PositiveQuantityField()
    batch_number = serializers.CharField(required=False, allow_blank=True, default='')
    expiry_date = serializers.DateField(required=False, allow_null=True, default=None)


class GoodsReceiptCreateSerializer(serializers.Serializer):
    purchase_order = serializers.PrimaryKeyRelatedField(queryset=PurchaseOrder.objects.all())
    items = GoodsReceiptLineInputSerializer(many=True, allow_empty=False)
    received_date = serializers.DateField(required=False, allow_null=True, default=None)
    vehicle_number = serializers.CharField(required=False, allow_blank=True, default='')
    supplier_dc_number = serializers.CharField(required=False, allow_blank=True, default='')
    supplier_invoice_number = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class InspectionLineSerializer(serializers.Serializer):
    item = serializers.UUIDField()
    accepted_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=0)
    rejected_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=0, default=0)
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default='')


class InspectionSerializer(serializers.Serializer):
    items = InspectionLineSerializer(many=True, allow_empty=False)

    def to_results(self):
        return {
            str(line['item']): {
                'accepted_quantity': line['accepted_quantity'],
                'rejected_quantity': line['rejected_quantity'],
                'rejection_reason': line['rejection_reason'],
            }
            for line in self.validated_data['items']
        }


# =============================================================================
# INVOICES
# =============================================================================

class PurchaseInvoiceSerializer(DocumentSerializer):
    order_number = serializers.CharField(source='purchase_order.number', read_only=True)
    amount_mismatch = serializers.BooleanField(read_only=True)

    class Meta:
        model = PurchaseInvoice
        fields = [
            'id', 'number', 'purchase_order', 'order_number', 'goods_receipt',
            'supplier_invoice_number', 'invoice_date', 'due_date',
            'subtotal', 'gst_amount', 'total', 'paid_amount', 'paid_at', 'payment_reference',
            'status', 'status_display', 'dispute_reason', 'amount_mismatch', 'created_at',
        ]
        read_only_fields = [
            'id', 'number', 'paid_amount', 'paid_at', 'payment_reference',
            'status', 'dispute_reason', 'created_at',
        ]


class InvoicePaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, required=False, allow_null=True,
                                      default=None)
    reference = serializers.CharField(required=False, allow_blank=True, default='')
