"""
Dispatch API Serializers.

Serializers for delivery challans and dispatch records.
"""

from rest_framework import serializers

from infrastructure.persistence.models import (
    DeliveryChallan,
    DeliveryChallanItem,
    DispatchRecord,
    FinishedGood,
)
from .base import BaseModelSerializer, DocumentSerializer
from .procurement import PositiveQuantityField


class DeliveryChallanItemSerializer(BaseModelSerializer):
    finished_good_number = serializers.CharField(source='finished_good.number', read_only=True, default=None)

    class Meta:
        model = DeliveryChallanItem
        fields = [
            'id', 'sl_no', 'item_code', 'description', 'hsn_code',
            'quantity', 'unit', 'finished_good', 'finished_good_number',
        ]
        read_only_fields = fields


class DeliveryChallanSerializer(DocumentSerializer):
    items = DeliveryChallanItemSerializer(many=True, read_only=True)
    reason_display = serializers.CharField(source='get_reason_display', read_only=True)
    total_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)

    class Meta:
        model = DeliveryChallan
        fields = [
            'id', 'number', 'challan_date', 'status', 'status_display',
            'reason', 'reason_display', 'consignor',
            'consignee_name', 'consignee_address', 'consignee_gstin', 'consignee_phone',
            'transport_mode', 'vehicle_number', 'driver_name', 'driver_phone', 'lr_number',
            'dispatched_at', 'delivered_at', 'received_by_name',
            'notes', 'items', 'total_quantity', 'created_at',
        ]
        read_only_fields = fields


class ChallanItemInputSerializer(serializers.Serializer):
    finished_good = serializers.PrimaryKeyRelatedField(
        queryset=FinishedGood.objects.all(), required=False, allow_null=True, default=None
    )
    description = serializers.CharField(required=False, allow_blank=True, default='')
    item_code = serializers.CharField(required=False, allow_blank=True, default='')
    hsn_code = serializers.CharField(required=False, allow_blank=True, default='')
    quantity = PositiveQuantityField()
    unit = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['finished_good'] is None and not attrs['description']:
            raise serializers.ValidationError('A line needs a finished good or a description.')
        return attrs


class DeliveryChallanCreateSerializer(serializers.Serializer):
    items = ChallanItemInputSerializer(many=True, allow_empty=False)
    challan_date = serializers.DateField(required=False)
    reason = serializers.ChoiceField(choices=DeliveryChallan.REASON_CHOICES, default='supply')
    consignee_name = serializers.CharField()
    consignee_address = serializers.CharField()
    consignee_gstin = serializers.CharField(required=False, allow_blank=True, default='')
    consignee_phone = serializers.CharField(required=False, allow_blank=True, default='')
    transport_mode = serializers.ChoiceField(choices=DeliveryChallan.TRANSPORT_MODE_CHOICES, default='road')
    vehicle_number = serializers.CharField(required=False, allow_blank=True, default='')
    driver_name = serializers.CharField(required=False, allow_blank=True, default='')
    driver_phone = serializers.CharField(required=False, allow_blank=True, default='')
    lr_number = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DeliverSerializer(serializers.Serializer):
    received_by_name = serializers.CharField(required=False, allow_blank=True, default='')


class DispatchRecordSerializer(BaseModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    finished_good_number = serializers.CharField(source='finished_good.number', read_only=True, default=None)
    challan_number = serializers.CharField(source='challan.number', read_only=True, default=None)
    dispatched_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = DispatchRecord
        fields = [
            'id', 'finished_good', 'finished_good_number', 'challan', 'challan_number',
            'customer', 'destination', 'quantity', 'status', 'status_display',
            'dispatch_date', 'delivered_date', 'tracking_reference', 'dispatched_by',
            'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'challan', 'status', 'dispatch_date', 'delivered_date',
            'created_at', 'updated_at',
        ]


class TransitSerializer(serializers.Serializer):
    tracking_reference = serializers.CharField(required=False, allow_blank=True, default='')
