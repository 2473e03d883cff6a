"""
BOM Serializers.

Serializers for bills of materials and their lines.
"""

from rest_framework import serializers
from django.db import transaction

from infrastructure.persistence.models import BillOfMaterials, BOMItem
from .base import BaseModelSerializer, DocumentSerializer
from .catalog import MaterialMinimalSerializer


class BOMItemSerializer(BaseModelSerializer):
    """BOM line with the snapshot of the last stock check."""

    material_detail = MaterialMinimalSerializer(source='material', read_only=True)

    class Meta:
        model = BOMItem
        fields = [
            'id', 'material', 'material_detail',
            'required_quantity', 'unit', 'notes',
            'available_quantity', 'shortfall_quantity',
        ]
        read_only_fields = ['id', 'available_quantity', 'shortfall_quantity']

    def validate_required_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Required quantity must be positive.')
        return value


class BOMListSerializer(DocumentSerializer):
    items_count = serializers.IntegerField(source='items.count', read_only=True)

    class Meta:
        model = BillOfMaterials
        fields = [
            'id', 'number', 'project_name', 'product_name', 'quantity',
            'status', 'status_display', 'required_date',
            'items_count', 'items_available', 'items_short',
            'created_by', 'created_at',
        ]
        read_only_fields = fields


class BOMDetailSerializer(DocumentSerializer):
    """
    BOM with nested lines.

    Lines are replaced wholesale on update, which is only allowed in draft.
    """

    items = BOMItemSerializer(many=True)
    stock_checked_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = BillOfMaterials
        fields = [
            'id', 'number', 'project_name', 'product_name', 'quantity',
            'status', 'status_display', 'required_date', 'notes',
            'items', 'items_available', 'items_short',
            'stock_checked_at', 'stock_checked_by',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'number', 'status', 'items_available', 'items_short',
            'stock_checked_at', 'created_by', 'created_at', 'updated_at',
        ]

    def validate(self, attrs):
        if self.instance is not None and self.instance.status != 'draft':
            raise serializers.ValidationError('Only draft BOMs can be edited.')
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        items = validated_data.pop('items', [])
        bom = BillOfMaterials.objects.create(**validated_data)
        self._save_items(bom, items)
        return bom

    @transaction.atomic
    def update(self, instance, validated_data):
        items = validated_data.pop('items', None)
        instance = super().update(instance, validated_data)
        if items is not None:
            instance.items.all().delete()
            self._save_items(instance, items)
        return instance

    def _save_items(self, bom, items):
        for item in items:
            if not item.get('unit'):
                item['unit'] = item['material'].unit
            BOMItem.objects.create(bom=bom, **item)
