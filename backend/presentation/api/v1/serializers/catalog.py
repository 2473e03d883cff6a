"""
Catalog API Serializers.

Serializers for materials and suppliers.
"""

from rest_framework import serializers

from infrastructure.persistence.models import Material, Supplier
from .base import BaseModelSerializer


class SupplierListSerializer(BaseModelSerializer):
    """Serializer for supplier list."""

    class Meta:
        model = Supplier
        fields = [
            'id', 'code', 'name', 'contact_person', 'phone', 'email',
            'gstin', 'rating', 'is_active',
        ]


class SupplierDetailSerializer(BaseModelSerializer):
    """Serializer for supplier details."""

    materials_count = serializers.SerializerMethodField()

    class Meta:
        model = Supplier
        fields = [
            'id', 'code', 'name', 'contact_person', 'email', 'phone',
            'gstin', 'address', 'payment_terms', 'rating', 'is_active',
            'materials_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_materials_count(self, obj):
        return obj.materials.filter(deleted_at__isnull=True).count()

    def validate_rating(self, value):
        if value is not None and not 0 <= value <= 5:
            raise serializers.ValidationError('Rating must be between 0 and 5.')
        return value


class MaterialListSerializer(BaseModelSerializer):
    """Serializer for material list with derived stock figures."""

    category_display = serializers.CharField(source='get_category_display', read_only=True)
    stock_status = serializers.CharField(read_only=True)
    stock_value = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Material
        fields = [
            'id', 'code', 'name', 'category', 'category_display', 'unit',
            'current_stock', 'min_stock', 'last_price',
            'stock_status', 'stock_value', 'is_low_stock', 'is_active',
        ]
        read_only_fields = fields


class MaterialDetailSerializer(BaseModelSerializer):
    """
    Serializer for material details.

    current_stock is read-only; it changes through receipts, issues and
    adjustments only.
    """

    category_display = serializers.CharField(source='get_category_display', read_only=True)
    preferred_supplier_name = serializers.CharField(source='preferred_supplier.name', read_only=True, default=None)
    stock_status = serializers.CharField(read_only=True)
    stock_value = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Material
        fields = [
            'id', 'code', 'name', 'category', 'category_display', 'unit',
            'hsn_code', 'location',
            'current_stock', 'min_stock', 'max_stock',
            'last_price', 'average_price',
            'preferred_supplier', 'preferred_supplier_name',
            'is_batch_tracked', 'is_active',
            'stock_status', 'stock_value', 'is_low_stock',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'current_stock', 'average_price', 'created_at', 'updated_at']

    def validate(self, attrs):
        minimum = attrs.get('min_stock', getattr(self.instance, 'min_stock', 0))
        maximum = attrs.get('max_stock', getattr(self.instance, 'max_stock', None))
        if minimum is not None and minimum < 0:
            raise serializers.ValidationError({'min_stock': 'Minimum stock cannot be negative.'})
        if maximum is not None and minimum is not None and maximum < minimum:
            raise serializers.ValidationError({'max_stock': 'Maximum stock is below the minimum.'})
        return attrs


class MaterialMinimalSerializer(serializers.ModelSerializer):
    """Minimal material representation for document lines."""

    class Meta:
        model = Material
        fields = ['id', 'code', 'name', 'unit']
        read_only_fields = fields
