"""
BOM Views.

API views for Bills of Materials: editing, stock check and the
purchase requisition raised for the shortfall.
"""

from rest_framework import status, filters, serializers
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from application.services import bom_service
from domain.shared.exceptions import BusinessRuleViolationException
from infrastructure.persistence.models import BillOfMaterials
from infrastructure.persistence.models.procurement import PRIORITY_CHOICES
from ..serializers.bom import BOMDetailSerializer, BOMListSerializer
from ..serializers.procurement import PurchaseRequisitionDetailSerializer
from .base import BaseModelViewSet


class GenerateRequisitionSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=PRIORITY_CHOICES, default='normal')
    required_date = serializers.DateField(required=False, allow_null=True, default=None)


class BOMViewSet(BaseModelViewSet):
    """
    ViewSet for Bills of Materials.

    Endpoints:
    - GET /boms/ - list BOMs
    - POST /boms/ - create BOM with lines
    - GET /boms/{id}/ - BOM with lines and last stock check
    - PUT/PATCH /boms/{id}/ - update a draft BOM
    - DELETE /boms/{id}/ - soft delete a draft BOM
    - POST /boms/{id}/submit/ - submit for stock check
    - POST /boms/{id}/check_stock/ - compare lines with stock
    - POST /boms/{id}/generate_pr/ - raise a PR for the shortfall
    - POST /boms/{id}/complete/ - mark completed
    - POST /boms/{id}/cancel/ - cancel
    """

    queryset = BillOfMaterials.objects.select_related(
        'created_by', 'stock_checked_by'
    ).prefetch_related('items', 'items__material')
    required_permissions = {
        'read': ('production:read', 'inventory:read', 'purchase:read'),
        'write': 'production:write',
        'check_stock': ('production:write', 'inventory:write'),
        'generate_pr': ('production:write', 'purchase:write'),
    }

    serializer_classes = {
        'list': BOMListSerializer,
        'retrieve': BOMDetailSerializer,
        'default': BOMDetailSerializer,
    }

    search_fields = ['number', 'project_name', 'product_name']
    filterset_fields = ['status', 'project_name']
    ordering_fields = ['number', 'created_at', 'required_date']
    ordering = ['-created_at']

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    def perform_destroy(self, instance):
        if instance.status != 'draft':
            raise BusinessRuleViolationException(
                'bom_draft_only', f"BOM {instance.number} can only be deleted in draft"
            )
        super().perform_destroy(instance)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """Submit a draft BOM."""
        bom = bom_service.submit_bom(self.get_object(), user=request.user)
        return Response(BOMDetailSerializer(bom, context={'request': request}).data)

    @action(detail=True, methods=['post'])
    def check_stock(self, request, pk=None):
        """Compare every line with current stock and store the snapshot."""
        bom, result = bom_service.check_bom_stock(self.get_object().pk, user=request.user)
        return Response(bom_service.stock_check_payload(bom, result))

    @action(detail=True, methods=['post'])
    def generate_pr(self, request, pk=None):
        """Raise one purchase requisition for the short lines."""
        bom = self.get_object()
        serializer = GenerateRequisitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        requisition = bom_service.generate_purchase_requisition(
            bom.pk, user=request.user, **serializer.validated_data
        )
        return Response(
            PurchaseRequisitionDetailSerializer(requisition, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        bom = bom_service.complete_bom(self.get_object(), user=request.user)
        return Response(BOMDetailSerializer(bom, context={'request': request}).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        bom = bom_service.cancel_bom(self.get_object(), user=request.user)
        return Response(BOMDetailSerializer(bom, context={'request': request}).data)
