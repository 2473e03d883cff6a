"""
Dashboard Views.

Role dashboards: one aggregated screen per department, built by the
dashboard service and refreshed live through the dashboard websocket.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from application.services import dashboard_service
from ...permissions import holds_any


DASHBOARD_PERMISSIONS = {
    'md': 'dashboard:md',
    'purchase': 'purchase:read',
    'store': 'inventory:read',
    'production': 'production:read',
    'quality': 'quality:write',
    'dispatch': 'dispatch:write',
}


class DashboardViewSet(viewsets.ViewSet):
    """
    ViewSet for dashboards.

    Endpoints:
    - GET /dashboard/summary/ - company-wide counters
    - GET /dashboard/mine/ - the dashboard of the current user's role
    - GET /dashboard/role/{name}/ - md, purchase, store, production, quality, dispatch
    """

    permission_classes = [IsAuthenticated]

    @action(detail=False, methods=['get'])
    def summary(self, request):
        return Response(dashboard_service.summary())

    @action(detail=False, methods=['get'])
    def mine(self, request):
        name = request.user.role_enum.dashboard
        if name not in dashboard_service.ROLE_DASHBOARDS:
            return Response({'dashboard': 'summary', 'data': dashboard_service.summary()})
        return Response({'dashboard': name, 'data': dashboard_service.for_role(name, request.user)})

    @action(detail=False, methods=['get'], url_path=r'role/(?P<name>[a-z_]+)')
    def role(self, request, name=None):
        if name not in dashboard_service.ROLE_DASHBOARDS:
            return Response({'detail': f"Unknown dashboard '{name}'"}, status=status.HTTP_404_NOT_FOUND)
        if not holds_any(request.user, DASHBOARD_PERMISSIONS[name]):
            return Response(
                {'detail': 'You do not have permission to perform this action.'},
                status=status.HTTP_403_FORBIDDEN
            )
        return Response({'dashboard': name, 'data': dashboard_service.for_role(name, request.user)})
