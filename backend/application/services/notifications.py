"""
Notification fan-out.

A notification is stored once and addressed to roles and/or one user.
After the surrounding transaction commits it is pushed to the matching
Channels groups so connected dashboards update without polling.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from infrastructure.persistence.models import Notification, NotificationRole

logger = logging.getLogger(__name__)


def role_group(role):
    return f'role_{role}'


def user_group(user_id):
    return f'user_{user_id}'


DASHBOARD_GROUP = 'dashboard'


def notify(title, message='', roles=None, user=None, notification_type='info',
           document=None, priority='normal', created_by=None):
    """
    Create a notification and schedule its real-time push.

    Returns the saved Notification.
    """
    notification = Notification(
        notification_type=notification_type,
        title=title,
        message=message,
        for_roles=list(roles or []),
        for_user=user,
        priority=priority,
        created_by=created_by if getattr(created_by, 'is_authenticated', False) else None,
    )
    if document is not None:
        notification.document_type = document._meta.model_name
        notification.document_id = str(document.pk)
        notification.document_number = getattr(document, 'number', '') or ''
    notification.save()
    NotificationRole.objects.bulk_create(
        NotificationRole(notification=notification, role=role) for role in set(notification.for_roles)
    )

    transaction.on_commit(lambda: push_notification(notification))
    return notification


def push_notification(notification):
    """Send a stored notification to every group it is addressed to."""
    groups = [role_group(role) for role in notification.for_roles or []]
    if notification.for_user_id:
        groups.append(user_group(notification.for_user_id))
    event = {
        'type': 'notification',
        'notification_id': str(notification.id),
        'notification_type': notification.notification_type,
        'title': notification.title,
        'message': notification.message,
        'priority': notification.priority,
        'document_type': notification.document_type,
        'document_id': notification.document_id,
        'document_number': notification.document_number,
        'timestamp': notification.created_at.isoformat() if notification.created_at else None,
    }
    for group in groups:
        broadcast(group, event)


def broadcast(group, event):
    """group_send from sync code; a missing or failing layer is logged only."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(group, event)
    except Exception as e:
        logger.warning(f"Real-time push to {group} failed: {e}")
        return False
    return True


def dashboard_changed(section, data=None):
    """Tell dashboard listeners that a section needs refreshing."""
    transaction.on_commit(lambda: broadcast(DASHBOARD_GROUP, {
        'type': 'dashboard_update',
        'section': section,
        'data': data or {},
        'timestamp': timezone.now().isoformat(),
    }))


def for_user(user):
    """Notifications addressed to the user directly or to the user's role."""
    condition = Q(for_user=user)
    if user.role:
        condition |= Q(id__in=NotificationRole.objects.filter(role=user.role).values('notification_id'))
    return Notification.objects.filter(condition)


def mark_all_read(user):
    updated = for_user(user).filter(is_read=False).update(is_read=True, read_at=timezone.now())
    logger.info(f"Marked {updated} notifications read for {user}")
    return updated
