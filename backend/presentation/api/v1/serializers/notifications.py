"""
Notification and Audit Serializers.
"""

from rest_framework import serializers

from infrastructure.persistence.models import AuditLog, Notification, SystemSetting
from .base import UserMinimalSerializer


class NotificationSerializer(serializers.ModelSerializer):
    created_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'title', 'message',
            'document_type', 'document_id', 'document_number',
            'for_roles', 'for_user', 'priority', 'is_read', 'read_at',
            'created_by', 'created_at',
        ]
        read_only_fields = fields


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserMinimalSerializer(read_only=True)
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'timestamp', 'user', 'user_ip', 'action', 'action_display',
            'document_type', 'document_id', 'document_number', 'details',
        ]
        read_only_fields = fields


class SystemSettingSerializer(serializers.ModelSerializer):
    updated_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = SystemSetting
        fields = ['key', 'value', 'description', 'updated_at', 'updated_by']
        read_only_fields = ['key', 'updated_at', 'updated_by']
