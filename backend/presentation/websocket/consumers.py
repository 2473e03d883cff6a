"""
WebSocket Consumers.

Real-time notifications and dashboard refresh signals.
"""

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.db import database_sync_to_async
import logging

from application.services.notifications import DASHBOARD_GROUP, role_group, user_group

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """Base consumer: authenticated users only, joins `self.groups_to_join()`."""

    async def connect(self):
        """Connect to WebSocket."""
        self.user = self.scope.get('user')
        self.joined = []

        if not self.user or not self.user.is_authenticated:
            await self.close(code=4001)
            return

        for group in self.groups_to_join():
            await self.channel_layer.group_add(group, self.channel_name)
            self.joined.append(group)

        await self.accept()

    async def disconnect(self, close_code):
        """Leave every joined group."""
        for group in getattr(self, 'joined', []):
            await self.channel_layer.group_discard(group, self.channel_name)

    def groups_to_join(self):
        return []

    async def receive_json(self, content):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})


class NotificationConsumer(BaseConsumer):
    """
    WebSocket consumer for user notifications.

    Joins the user's personal group and the group of the user's role, so
    notifications addressed to either arrive here.
    """

    def groups_to_join(self):
        groups = [user_group(self.user.id)]
        if self.user.role:
            groups.append(role_group(self.user.role))
        return groups

    async def connect(self):
        await super().connect()
        if self.joined:
            logger.info(f"User {self.user} connected to notifications")
            await self.send_json({
                'type': 'unread_count',
                'count': await self._unread_count(),
            })

    async def notification(self, event):
        """Handle a pushed notification."""
        await self.send_json({
            'type': 'notification',
            'notification_id': event.get('notification_id'),
            'notification_type': event.get('notification_type'),
            'title': event['title'],
            'message': event.get('message', ''),
            'priority': event.get('priority', 'normal'),
            'document_type': event.get('document_type'),
            'document_id': event.get('document_id'),
            'document_number': event.get('document_number'),
            'timestamp': event.get('timestamp'),
        })

    @database_sync_to_async
    def _unread_count(self):
        from application.services.notifications import for_user
        return for_user(self.user).filter(is_read=False).count()


class DashboardConsumer(BaseConsumer):
    """
    WebSocket consumer for dashboard updates.

    Sends the summary on connect and on 'refresh'; afterwards relays
    'dashboard_update' events naming the section that changed.
    """

    def groups_to_join(self):
        return [DASHBOARD_GROUP]

    async def connect(self):
        await super().connect()
        if self.joined:
            await self.send_json({
                'type': 'initial_data',
                'data': await self._get_dashboard_data(),
            })

    async def receive_json(self, content):
        """Handle incoming messages."""
        if content.get('type') == 'refresh':
            await self.send_json({
                'type': 'refresh_data',
                'data': await self._get_dashboard_data(),
            })
        else:
            await super().receive_json(content)

    async def dashboard_update(self, event):
        """Handle dashboard data update."""
        await self.send_json({
            'type': 'dashboard_update',
            'section': event.get('section'),
            'data': event.get('data', {}),
            'timestamp': event.get('timestamp'),
        })

    @database_sync_to_async
    def _get_dashboard_data(self):
        from application.services import dashboard_service
        return dashboard_service.summary()
