"""
User Serializers.

Serializers for authentication and user management.
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model, authenticate
from django.contrib.auth.password_validation import validate_password

from application.services.user_service import permissions_for_role
from domain.shared.value_objects import UserRole
from infrastructure.persistence.models import Role
from .base import BaseModelSerializer

User = get_user_model()


class RoleSerializer(BaseModelSerializer):
    """Serializer for role configuration."""

    users_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            'id', 'code', 'name', 'description',
            'default_permissions', 'dashboard', 'is_system_role',
            'users_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'code', 'is_system_role', 'created_at', 'updated_at']

    def get_users_count(self, obj):
        return User.objects.filter(role=obj.code, is_active=True).count()


class UserListSerializer(BaseModelSerializer):
    """Serializer for user list."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'full_name',
            'role', 'role_display', 'department', 'phone',
            'is_active', 'last_login',
        ]
        read_only_fields = fields


class UserDetailSerializer(BaseModelSerializer):
    """Serializer for user details and updates."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email',
            'first_name', 'last_name', 'full_name',
            'role', 'role_display', 'department', 'phone',
            'permissions', 'is_active', 'is_staff',
            'last_login', 'last_activity', 'date_joined',
        ]
        read_only_fields = ['id', 'is_staff', 'last_login', 'last_activity', 'date_joined']

    def validate_permissions(self, value):
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise serializers.ValidationError('Permissions must be a list of strings.')
        return value

    def update(self, instance, validated_data):
        role = validated_data.get('role')
        if role and role != instance.role and 'permissions' not in validated_data:
            validated_data['permissions'] = permissions_for_role(role)
        return super().update(instance, validated_data)


class UserCreateSerializer(BaseModelSerializer):
    """Serializer for creating users."""

    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'password', 'password_confirm',
            'first_name', 'last_name', 'role', 'department', 'phone',
            'permissions',
        ]
        read_only_fields = ['id']
        extra_kwargs = {'permissions': {'required': False}}

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({'password_confirm': 'Passwords do not match.'})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        role = validated_data.get('role') or UserRole.VIEWER.value
        if not validated_data.get('permissions'):
            validated_data['permissions'] = permissions_for_role(role)
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        return user


class ChangePasswordSerializer(serializers.Serializer):
    """Serializer for password change."""

    old_password = serializers.CharField(required=True, style={'input_type': 'password'})
    new_password = serializers.CharField(
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )

    def validate_old_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Wrong password.')
        return value


class LoginSerializer(serializers.Serializer):
    """Login with username or email."""

    username = serializers.CharField(required=True)
    password = serializers.CharField(
        required=True,
        style={'input_type': 'password'}
    )

    def validate(self, attrs):
        login = attrs.get('username')
        password = attrs.get('password')

        if '@' in login:
            match = User.objects.filter(email__iexact=login).values_list('username', flat=True).first()
            login = match or login

        user = authenticate(
            request=self.context.get('request'),
            username=login,
            password=password
        )
        if not user:
            raise serializers.ValidationError(
                'Invalid username or password.',
                code='authorization'
            )
        attrs['user'] = user
        return attrs


class UserProfileSerializer(BaseModelSerializer):
    """Serializer for the current user's profile."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    dashboard = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email',
            'first_name', 'last_name', 'full_name',
            'role', 'role_display', 'department', 'phone',
            'permissions', 'dashboard', 'is_superuser',
            'last_login',
        ]
        read_only_fields = fields

    def get_dashboard(self, obj):
        return obj.role_enum.dashboard
