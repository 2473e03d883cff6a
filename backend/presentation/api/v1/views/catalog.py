"""
Catalog Views.

API views for suppliers and materials.
"""

from django.db.models import F, Q
from django.http import HttpResponse
from django_filters import rest_framework as django_filters
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services import inventory_service
from infrastructure.persistence.models import Material, StockMovement, Supplier
from ..serializers.catalog import (
    MaterialDetailSerializer,
    MaterialListSerializer,
    SupplierDetailSerializer,
    SupplierListSerializer,
)
from ..serializers.inventory import ReorderSuggestionSerializer, StockMovementSerializer
from .base import BaseModelViewSet

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class MaterialFilterSet(django_filters.FilterSet):
    """Custom filterset for materials."""

    low_stock = django_filters.BooleanFilter(method='filter_low_stock')
    out_of_stock = django_filters.BooleanFilter(method='filter_out_of_stock')
    unit = django_filters.CharFilter(field_name='unit', lookup_expr='iexact')

    class Meta:
        model = Material
        fields = [
            'category',
            'is_active',
            'is_batch_tracked',
            'preferred_supplier',
            'low_stock',
            'out_of_stock',
            'unit',
        ]

    def filter_low_stock(self, queryset, name, value):
        condition = Q(current_stock__lte=F('min_stock'))
        return queryset.filter(condition) if value else queryset.exclude(condition)

    def filter_out_of_stock(self, queryset, name, value):
        return queryset.filter(current_stock__lte=0) if value else queryset.filter(current_stock__gt=0)


class SupplierViewSet(BaseModelViewSet):
    """
    ViewSet for suppliers.

    Endpoints:
    - GET /suppliers/ - list all suppliers
    - POST /suppliers/ - create supplier
    - GET /suppliers/{id}/ - get supplier details
    - PUT/PATCH /suppliers/{id}/ - update supplier
    - DELETE /suppliers/{id}/ - delete supplier
    - GET /suppliers/top_rated/ - get top-rated suppliers
    """

    queryset = Supplier.objects.all()
    required_permissions = {'write': 'purchase:write'}

    serializer_classes = {
        'list': SupplierListSerializer,
        'retrieve': SupplierDetailSerializer,
        'default': SupplierDetailSerializer,
    }

    search_fields = ['code', 'name', 'contact_person', 'gstin']
    filterset_fields = ['is_active', 'rating']
    ordering_fields = ['code', 'name', 'rating', 'created_at']
    ordering = ['name']

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    @action(detail=False, methods=['get'])
    def top_rated(self, request):
        """Get top-rated suppliers."""
        limit = int(request.query_params.get('limit', 10))
        suppliers = self.get_queryset().filter(
            is_active=True,
            rating__gt=0
        ).order_by('-rating')[:limit]

        serializer = SupplierListSerializer(suppliers, many=True)
        return Response(serializer.data)


class MaterialViewSet(BaseModelViewSet):
    """
    ViewSet for materials.

    Endpoints:
    - GET /materials/ - list materials (?low_stock=true, ?category=...)
    - POST /materials/ - create material
    - GET /materials/{id}/ - material details
    - GET /materials/{id}/movements/ - stock ledger of one material
    - GET /materials/reorder_suggestions/ - what to order, most urgent first
    - GET /materials/export/ - stock report as xlsx
    """

    queryset = Material.objects.select_related('preferred_supplier')
    required_permissions = {
        'write': 'inventory:write',
        'reorder_suggestions': ('inventory:read', 'purchase:read'),
        'export': ('reports:export', 'inventory:write'),
    }

    serializer_classes = {
        'list': MaterialListSerializer,
        'retrieve': MaterialDetailSerializer,
        'default': MaterialDetailSerializer,
    }

    search_fields = ['code', 'name', 'hsn_code', 'location']
    filterset_class = MaterialFilterSet
    ordering_fields = ['code', 'name', 'current_stock', 'min_stock', 'last_price']
    ordering = ['code']

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    @action(detail=True, methods=['get'])
    def movements(self, request, pk=None):
        """Stock ledger of this material, newest first."""
        material = self.get_object()
        queryset = StockMovement.objects.filter(material=material).select_related(
            'material', 'performed_by', 'batch'
        ).order_by('-performed_at')

        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(StockMovementSerializer(page, many=True).data)
        return Response(StockMovementSerializer(queryset, many=True).data)

    @action(detail=False, methods=['get'])
    def reorder_suggestions(self, request):
        """Materials at or under their reorder point with suggested quantities."""
        lead_time = request.query_params.get('lead_time_days')
        suggestions = inventory_service.reorder_suggestions(
            lead_time_days=int(lead_time) if lead_time else None
        )
        return Response({
            'count': len(suggestions),
            'results': ReorderSuggestionSerializer(suggestions, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def export(self, request):
        """Download the stock report as an Excel workbook."""
        filename, content = inventory_service.export_stock_report(user=request.user)
        response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response
