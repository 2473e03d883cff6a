"""
Webhook Service.

Inbound automation events (n8n) are authenticated with a shared secret,
stored as received and processed later by a Celery task.
"""

import hmac
import logging

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from infrastructure.persistence.models import WebhookEvent

logger = logging.getLogger(__name__)

SECRET_HEADER = 'X-N8N-Secret'


def secret_matches(provided, expected=None):
    """Constant-time comparison against the configured secret."""
    expected = settings.N8N_WEBHOOK_SECRET if expected is None else expected
    if not provided or not expected:
        return False
    return hmac.compare_digest(str(provided).encode('utf-8'), str(expected).encode('utf-8'))


def store_event(payload, source='n8n'):
    """
    Persist a payload.

    Returns the event, or None when the database refused it; the failure
    is logged.
    """
    event_type = ''
    if isinstance(payload, dict):
        event_type = str(payload.get('event') or payload.get('type') or '')[:100]
    try:
        event = WebhookEvent.objects.create(source=source, event_type=event_type, payload=payload)
    except DatabaseError as e:
        logger.error(f"Failed to store {source} webhook payload: {e}")
        return None
    logger.info(f"Stored {source} webhook event {event.pk} ({event_type or 'untyped'})")
    return event


def process_event(event):
    """
    Mark a stored event processed.

    Unknown shapes are kept for inspection rather than dropped.
    """
    if event.status == 'processed':
        return event
    try:
        if not isinstance(event.payload, (dict, list)):
            raise ValueError(f"Unsupported payload type {type(event.payload).__name__}")
        event.status = 'processed'
        event.error = ''
    except ValueError as e:
        event.status = 'failed'
        event.error = str(e)
        logger.warning(f"Webhook event {event.pk} failed: {e}")
    event.processed_at = timezone.now()
    event.save(update_fields=['status', 'error', 'processed_at'])
    return event
