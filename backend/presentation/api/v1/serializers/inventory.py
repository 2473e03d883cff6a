"""
Inventory API Serializers.

Serializers for stock movements, adjustments, batches, alerts and the
supervisor requisition / issue workflow.
"""

from rest_framework import serializers

from domain.shared.value_objects import Urgency
from infrastructure.persistence.models import (
    Material,
    MaterialIssue,
    MaterialIssueItem,
    MaterialRequisition,
    MaterialRequisitionItem,
    MaterialReservation,
    MaterialReturn,
    StockAdjustment,
    StockAlert,
    StockBatch,
    StockMovement,
)
from .base import BaseModelSerializer, DocumentSerializer
from .catalog import MaterialMinimalSerializer
from .procurement import PositiveQuantityField


# =============================================================================
# STOCK
# =============================================================================

class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only ledger line."""

    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)
    performed_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'material', 'material_detail', 'movement_type', 'movement_type_display',
            'quantity', 'balance_after', 'batch', 'batch_number',
            'reference', 'project', 'performed_by', 'performed_at', 'notes',
        ]
        read_only_fields = fields


class StockAdjustmentSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    adjusted_by = serializers.StringRelatedField(read_only=True)
    reason_display = serializers.CharField(source='get_reason_display', read_only=True)

    class Meta:
        model = StockAdjustment
        fields = [
            'id', 'number', 'material', 'material_detail',
            'previous_quantity', 'new_quantity', 'difference',
            'reason', 'reason_display', 'notes', 'adjusted_by', 'created_at',
        ]
        read_only_fields = fields


class StockAdjustmentCreateSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    new_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=0)
    reason = serializers.ChoiceField(choices=StockAdjustment.REASON_CHOICES, default='physical_count')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StockBatchSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    qc_status_display = serializers.CharField(source='get_qc_status_display', read_only=True)
    expiry_status = serializers.CharField(read_only=True)
    grn_number = serializers.CharField(source='goods_receipt.number', read_only=True, default=None)

    class Meta:
        model = StockBatch
        fields = [
            'id', 'material', 'material_detail', 'batch_number',
            'received_quantity', 'remaining_quantity', 'received_date', 'expiry_date',
            'expiry_status', 'qc_status', 'qc_status_display',
            'goods_receipt', 'grn_number', 'unit_cost', 'created_at',
        ]
        read_only_fields = fields


class StockAlertSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    acknowledged_by = serializers.StringRelatedField(read_only=True)
    resolved_by = serializers.StringRelatedField(read_only=True)
    order_number = serializers.CharField(source='purchase_order.number', read_only=True, default=None)

    class Meta:
        model = StockAlert
        fields = [
            'id', 'material', 'material_detail', 'level', 'status',
            'current_stock', 'min_stock', 'suggested_reorder_quantity',
            'acknowledged_by', 'acknowledged_at', 'resolved_by', 'resolved_at',
            'purchase_order', 'order_number', 'snoozed_until', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SnoozeSerializer(serializers.Serializer):
    hours = serializers.IntegerField(min_value=1, max_value=24 * 30, default=24)


class ReorderSuggestionSerializer(serializers.Serializer):
    material_id = serializers.UUIDField()
    material_code = serializers.CharField()
    material_name = serializers.CharField()
    current_stock = serializers.DecimalField(max_digits=15, decimal_places=3)
    min_stock = serializers.DecimalField(max_digits=15, decimal_places=3)
    avg_daily_consumption = serializers.DecimalField(max_digits=15, decimal_places=3)
    lead_time_days = serializers.IntegerField()
    suggested_quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    priority = serializers.CharField(source='priority.value')
    estimated_cost = serializers.DecimalField(max_digits=18, decimal_places=2)


# =============================================================================
# REQUISITION & ISSUE
# =============================================================================

class MaterialRequisitionItemSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    shortfall = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)

    class Meta:
        model = MaterialRequisitionItem
        fields = [
            'id', 'material', 'material_detail', 'requested_quantity',
            'available_quantity', 'issued_quantity', 'shortfall', 'notes',
        ]
        read_only_fields = fields


class MaterialRequisitionSerializer(DocumentSerializer):
    items = MaterialRequisitionItemSerializer(many=True, read_only=True)
    requested_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = MaterialRequisition
        fields = [
            'id', 'number', 'requested_by', 'project', 'team', 'urgency',
            'required_date', 'status', 'status_display', 'rejection_reason',
            'workflow_log', 'notes', 'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class MaterialRequisitionItemInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    requested_quantity = PositiveQuantityField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialRequisitionCreateSerializer(serializers.Serializer):
    items = MaterialRequisitionItemInputSerializer(many=True, allow_empty=False)
    project = serializers.CharField(required=False, allow_blank=True, default='')
    team = serializers.CharField(required=False, allow_blank=True, default='')
    urgency = serializers.ChoiceField(choices=[u.value for u in Urgency], default=Urgency.NORMAL.value)
    required_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialIssueItemSerializer(serializers.ModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)

    class Meta:
        model = MaterialIssueItem
        fields = ['id', 'material', 'material_detail', 'quantity', 'batch', 'batch_number']
        read_only_fields = fields


class MaterialIssueSerializer(BaseModelSerializer):
    items = MaterialIssueItemSerializer(many=True, read_only=True)
    requisition_number = serializers.CharField(source='requisition.number', read_only=True, default=None)
    issued_to = serializers.StringRelatedField(read_only=True)
    issued_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = MaterialIssue
        fields = [
            'id', 'number', 'requisition', 'requisition_number',
            'issued_to', 'issued_by', 'project', 'team', 'issued_at', 'items',
        ]
        read_only_fields = fields


# =============================================================================
# RETURNS & RESERVATIONS
# =============================================================================

class MaterialReturnSerializer(BaseModelSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)
    condition_display = serializers.CharField(source='get_condition_display', read_only=True)
    returned_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = MaterialReturn
        fields = [
            'id', 'number', 'material', 'material_detail', 'quantity', 'job_number',
            'batch', 'batch_number', 'condition', 'condition_display',
            'restocked_quantity', 'remarks', 'returned_by', 'returned_at',
        ]
        read_only_fields = fields


class MaterialReturnCreateSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    quantity = PositiveQuantityField()
    job_number = serializers.CharField(max_length=50)
    condition = serializers.ChoiceField(choices=MaterialReturn.CONDITION_CHOICES, default='good')
    batch_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialReservationSerializer(DocumentSerializer):
    material_detail = MaterialMinimalSerializer(source='material', read_only=True)
    reserved_by = serializers.StringRelatedField(read_only=True)
    issue_number = serializers.CharField(source='issue.number', read_only=True, default=None)

    class Meta:
        model = MaterialReservation
        fields = [
            'id', 'number', 'material', 'material_detail', 'quantity', 'job_number',
            'production_order', 'status', 'status_display', 'reserved_by',
            'issue', 'issue_number', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class MaterialReservationCreateSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all())
    quantity = PositiveQuantityField()
    job_number = serializers.CharField(max_length=50)
    production_order = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
