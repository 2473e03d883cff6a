"""
WebSocket Routing.

URL routing for WebSocket connections.
"""

from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    # User and role notifications
    re_path(
        r'ws/notifications/$',
        consumers.NotificationConsumer.as_asgi()
    ),

    # Dashboard updates
    re_path(
        r'ws/dashboard/$',
        consumers.DashboardConsumer.as_asgi()
    ),
]
