"""
Base Views.

Common view mixins and base classes.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from application.services.audit import log_action
from ...permissions import HasERPPermission


class AuditViewMixin:
    """
    Mixin that adds audit fields on create/update and writes audit entries.
    """

    def perform_create(self, serializer):
        """Set created_by and updated_by on create."""
        instance = serializer.save(
            created_by=self.request.user,
            updated_by=self.request.user
        )
        log_action('create', instance, user=self.request.user, request=self.request)

    def perform_update(self, serializer):
        """Set updated_by on update."""
        instance = serializer.save(updated_by=self.request.user)
        log_action('update', instance, user=self.request.user, request=self.request,
                   details={'fields': sorted(serializer.validated_data.keys())})


class SoftDeleteViewMixin:
    """
    DELETE marks the object deleted instead of removing the row.
    """

    def perform_destroy(self, instance):
        instance.soft_delete(user=self.request.user)
        log_action('delete', instance, user=self.request.user, request=self.request)

    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        """Restore a soft-deleted object."""
        obj = self.get_restorable_object(pk)
        obj.restore()
        return Response(status=status.HTTP_200_OK)

    def get_restorable_object(self, pk):
        model = self.get_queryset().model
        return model.all_objects.get(pk=pk)


class HistoryViewMixin:
    """
    Mixin for accessing object history.
    """

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """Get object history."""
        obj = self.get_object()

        if not hasattr(obj, 'history'):
            return Response(
                {'detail': 'History is not available for this object'},
                status=status.HTTP_400_BAD_REQUEST
            )

        history = obj.history.all()[:50]
        data = [{
            'id': h.history_id,
            'date': h.history_date,
            'user': str(h.history_user) if h.history_user else None,
            'type': h.history_type,
            'status': getattr(h, 'status', None),
            'changes': h.history_change_reason,
        } for h in history]

        return Response(data)


class SerializerByActionMixin:
    """
    Return different serializers per action.

    Override `serializer_classes` dict in subclass:
    serializer_classes = {
        'list': ListSerializer,
        'retrieve': DetailSerializer,
        'default': DetailSerializer,
    }
    """

    def get_serializer_class(self):
        serializer_classes = getattr(self, 'serializer_classes', {})
        return serializer_classes.get(
            self.action,
            serializer_classes.get('default', super().get_serializer_class())
        )


class BaseModelViewSet(
    SerializerByActionMixin,
    AuditViewMixin,
    SoftDeleteViewMixin,
    HistoryViewMixin,
    viewsets.ModelViewSet
):
    """
    Base viewset with common functionality.
    """
    permission_classes = [IsAuthenticated, HasERPPermission]


class DocumentViewSet(
    SerializerByActionMixin,
    HistoryViewMixin,
    viewsets.ReadOnlyModelViewSet
):
    """
    Workflow documents: read through the API, created and moved through
    service calls in @action handlers.
    """
    permission_classes = [IsAuthenticated, HasERPPermission]

    def document_response(self, document, status_code=status.HTTP_200_OK):
        serializer_class = self.serializer_classes.get('retrieve', self.serializer_classes.get('default'))
        return Response(serializer_class(document, context=self.get_serializer_context()).data,
                        status=status_code)

    def validated(self, serializer_class, data=None):
        serializer = serializer_class(data=self.request.data if data is None else data,
                                      context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data
