"""
Notification, Audit and Settings Views.
"""

from django_filters import rest_framework as django_filters
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from application.services import notifications
from application.services.audit import log_action
from infrastructure.persistence.models import AuditLog, SystemSetting
from ...pagination import LargeResultsSetPagination
from ...permissions import HasERPPermission
from ..serializers.notifications import (
    AuditLogSerializer,
    NotificationSerializer,
    SystemSettingSerializer,
)


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The current user's notifications, direct and role-wide.

    Endpoints:
    - GET /notifications/ - (?is_read=false)
    - POST /notifications/{id}/mark_read/
    - POST /notifications/mark_all_read/
    - GET /notifications/unread_count/
    """

    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    filterset_fields = ['is_read', 'notification_type', 'priority']
    ordering = ['-created_at']
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]

    def get_queryset(self):
        return notifications.for_user(self.request.user).select_related('created_by')

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notification = self.get_object().mark_read()
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = notifications.mark_all_read(request.user)
        return Response({'updated': updated})

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'count': self.get_queryset().filter(is_read=False).count()})


class AuditLogFilterSet(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name='timestamp', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='timestamp', lookup_expr='date__lte')

    class Meta:
        model = AuditLog
        fields = ['action', 'document_type', 'document_id', 'user', 'date_from', 'date_to']


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Audit trail. Entries are written by the services and never edited.

    Endpoints:
    - GET /audit-logs/ - (?document_type=purchaseorder, ?document_id=, ?action=approve)
    """

    queryset = AuditLog.objects.select_related('user')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': ('reports:read', 'settings:read')}
    pagination_class = LargeResultsSetPagination

    search_fields = ['document_number', 'user__username', 'user__email']
    filterset_class = AuditLogFilterSet
    ordering_fields = ['timestamp']
    ordering = ['-timestamp']
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]


class SystemSettingViewSet(mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           mixins.UpdateModelMixin,
                           viewsets.GenericViewSet):
    """
    Runtime business settings (approval threshold, GST rate, company).

    Endpoints:
    - GET /settings/
    - GET /settings/{key}/
    - PATCH /settings/{key}/ - body: {value}
    """

    queryset = SystemSetting.objects.select_related('updated_by')
    serializer_class = SystemSettingSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': 'settings:read', 'write': 'settings:write'}
    lookup_field = 'key'
    pagination_class = None

    def perform_update(self, serializer):
        setting = serializer.save(updated_by=self.request.user)
        log_action('update', user=self.request.user, request=self.request,
                   document_type='system_setting', details={'key': setting.key, 'value': setting.value})
