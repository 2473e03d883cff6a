"""
User Views.

API views for authentication and user management.
"""

from rest_framework import status, viewsets, filters, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from django_filters.rest_framework import DjangoFilterBackend
from django.contrib.auth import get_user_model
from django.utils import timezone

from application.services.audit import log_action
from application.services.user_service import change_role
from domain.shared.value_objects import UserRole
from infrastructure.persistence.models import Role
from ..serializers.users import (
    UserListSerializer,
    UserDetailSerializer,
    UserCreateSerializer,
    UserProfileSerializer,
    ChangePasswordSerializer,
    LoginSerializer,
    RoleSerializer,
)
from ...permissions import HasERPPermission
from .base import SerializerByActionMixin

User = get_user_model()


class AuthViewSet(viewsets.GenericViewSet):
    """
    ViewSet for authentication.

    Endpoints:
    - POST /auth/login/ - login and get JWT tokens
    - POST /auth/logout/ - logout (blacklist refresh token)
    - POST /auth/refresh/ - refresh access token
    - GET /auth/me/ - get current user profile
    - POST /auth/change_password/ - change password
    """

    permission_classes = [AllowAny]

    @action(detail=False, methods=['post'], permission_classes=[AllowAny])
    def login(self, request):
        """Login with username or email and get JWT tokens."""
        serializer = LoginSerializer(data=request.data, context={'request': request})

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.validated_data['user']
        refresh = RefreshToken.for_user(user)

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        log_action('login', user=user, request=request, document_type='user')

        return Response({
            'access': str(refresh.access_token),
            'refresh': str(refresh),
            'user': UserProfileSerializer(user).data,
        })

    @action(detail=False, methods=['post'], permission_classes=[AllowAny])
    def refresh(self, request):
        """Refresh access token."""
        serializer = TokenRefreshSerializer(data=request.data)

        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            return Response(
                {'code': 'token_not_valid', 'detail': str(e)},
                status=status.HTTP_401_UNAUTHORIZED
            )

        return Response(serializer.validated_data, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'], permission_classes=[IsAuthenticated])
    def logout(self, request):
        """Logout and blacklist refresh token."""
        refresh_token = request.data.get('refresh')
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError as e:
                return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        log_action('logout', request=request, document_type='user')
        return Response({'message': 'Logged out'})

    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def me(self, request):
        """Get current user profile."""
        return Response(UserProfileSerializer(request.user).data)

    @action(detail=False, methods=['post'], permission_classes=[IsAuthenticated])
    def change_password(self, request):
        """Change current user password."""
        serializer = ChangePasswordSerializer(
            data=request.data,
            context={'request': request}
        )

        if serializer.is_valid():
            request.user.set_password(serializer.validated_data['new_password'])
            request.user.save()
            log_action('update', request.user, request=request, details={'fields': ['password']})
            return Response({'message': 'Password changed'})
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class UserViewSet(SerializerByActionMixin, viewsets.ModelViewSet):
    """
    ViewSet for user management.

    Endpoints:
    - GET /users/ - list all users
    - POST /users/ - create user
    - GET /users/{id}/ - get user details
    - PUT/PATCH /users/{id}/ - update user
    - DELETE /users/{id}/ - deactivate user
    - POST /users/{id}/activate/ - activate user
    - POST /users/{id}/set_role/ - change role and reset permissions
    - POST /users/{id}/reset_password/ - set a new password (admin)
    """

    queryset = User.objects.all()
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': 'users:read', 'write': 'users:write'}

    serializer_classes = {
        'list': UserListSerializer,
        'retrieve': UserDetailSerializer,
        'create': UserCreateSerializer,
        'default': UserDetailSerializer,
    }

    search_fields = ['username', 'email', 'first_name', 'last_name', 'department']
    filterset_fields = ['is_active', 'role', 'department']
    ordering_fields = ['username', 'last_name', 'date_joined', 'last_login']
    ordering = ['first_name', 'last_name']

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    def perform_create(self, serializer):
        user = serializer.save()
        log_action('create', user, request=self.request)

    def perform_update(self, serializer):
        user = serializer.save()
        log_action('update', user, request=self.request,
                   details={'fields': sorted(serializer.validated_data.keys())})

    def destroy(self, request, *args, **kwargs):
        """Deactivate user instead of deleting."""
        user = self.get_object()
        user.is_active = False
        user.save(update_fields=['is_active'])
        log_action('delete', user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        """Activate user."""
        user = self.get_object()
        user.is_active = True
        user.save(update_fields=['is_active'])
        return Response({'message': 'User activated'})

    @action(detail=True, methods=['post'])
    def set_role(self, request, pk=None):
        """Change the role; permissions reset to the role defaults."""
        user = self.get_object()
        role = request.data.get('role')
        if role not in dict(UserRole.choices()):
            return Response({'role': 'Unknown role.'}, status=status.HTTP_400_BAD_REQUEST)
        change_role(user, role, changed_by=request.user)
        return Response(UserDetailSerializer(user).data)

    @action(detail=True, methods=['post'])
    def reset_password(self, request, pk=None):
        """Reset user password (admin function)."""
        user = self.get_object()
        new_password = request.data.get('new_password')
        if not new_password or len(new_password) < 8:
            return Response(
                {'new_password': 'Password must be at least 8 characters.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        user.set_password(new_password)
        user.save()
        log_action('update', user, request=request, details={'fields': ['password']})
        return Response({'message': 'Password reset'})


class RoleViewSet(mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  mixins.UpdateModelMixin,
                  viewsets.GenericViewSet):
    """
    Role configuration. Roles are fixed; their defaults are editable.
    """

    queryset = Role.objects.all()
    serializer_class = RoleSerializer
    permission_classes = [IsAuthenticated, HasERPPermission]
    required_permissions = {'read': 'users:read', 'write': 'users:write'}
    pagination_class = None
