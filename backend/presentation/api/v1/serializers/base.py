"""
Base Serializers.

Common serializer mixins and base classes.
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer with common configuration.
    """

    class Meta:
        abstract = True
        read_only_fields = ['id', 'created_at', 'updated_at']


class DocumentSerializer(BaseModelSerializer):
    """Numbered document with a status workflow; number and status are server-managed."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user serializer for nested representations."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'email', 'role']
        read_only_fields = fields


class ActionReasonSerializer(serializers.Serializer):
    """Body of reject/cancel/dispute actions."""

    reason = serializers.CharField(required=True, allow_blank=False)


class ActionCommentSerializer(serializers.Serializer):
    comments = serializers.CharField(required=False, allow_blank=True, default='')
