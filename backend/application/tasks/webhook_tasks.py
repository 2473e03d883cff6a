"""
Webhook Tasks.

Processing of stored inbound webhook events.
"""

from celery import shared_task
import logging

from application.services import webhook_service
from infrastructure.persistence.models import WebhookEvent

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


@shared_task
def process_webhook_event(event_id):
    try:
        event = WebhookEvent.objects.get(pk=event_id)
    except WebhookEvent.DoesNotExist:
        logger.warning(f"Webhook event {event_id} not found")
        return {'status': 'missing'}

    event = webhook_service.process_event(event)
    return {'status': event.status}


@shared_task
def process_pending_webhook_events():
    """Process events still in `received`, oldest first."""
    pending = WebhookEvent.objects.filter(status='received').order_by('received_at')[:BATCH_SIZE]
    counts = {'processed': 0, 'failed': 0}
    for event in pending:
        event = webhook_service.process_event(event)
        counts[event.status] = counts.get(event.status, 0) + 1
    if counts['processed'] or counts['failed']:
        logger.info(f"Webhook events: {counts['processed']} processed, {counts['failed']} failed")
    return counts
