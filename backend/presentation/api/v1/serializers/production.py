"""
Production API Serializers.

Serializers for finished goods and their quality check.
"""

from rest_framework import serializers

from infrastructure.persistence.models import FinishedGood
from .base import DocumentSerializer


class FinishedGoodSerializer(DocumentSerializer):
    """
    Finished good.

    Status, QC fields and the rework counter are changed through the
    QC actions only.
    """

    produced_by = serializers.StringRelatedField(read_only=True)
    qc_inspector = serializers.StringRelatedField(read_only=True)
    bom_number = serializers.CharField(source='bom.number', read_only=True, default=None)

    class Meta:
        model = FinishedGood
        fields = [
            'id', 'number', 'product_name', 'product_code', 'project',
            'bom', 'bom_number', 'quantity', 'unit', 'serial_number', 'hsn_code',
            'status', 'status_display', 'produced_by', 'produced_at',
            'qc_inspector', 'qc_date', 'qc_notes', 'rework_count',
            'storage_location', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'number', 'status', 'produced_at', 'qc_date', 'qc_notes',
            'rework_count', 'storage_location', 'created_at', 'updated_at',
        ]

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than zero.')
        return value


class QCDecisionSerializer(serializers.Serializer):
    passed = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs['passed'] and not attrs['notes'].strip():
            raise serializers.ValidationError({'notes': 'Notes are required when QC fails.'})
        return attrs


class MoveToStockSerializer(serializers.Serializer):
    location = serializers.CharField(required=False, allow_blank=True, default='')
