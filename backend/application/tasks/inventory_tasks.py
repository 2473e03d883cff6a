"""
Inventory Tasks.

Periodic stock alert scans, the reorder digest and batch expiry checks.
"""

from celery import shared_task
import logging

from application.services import inventory_service, notifications

from .notification_tasks import email_roles

logger = logging.getLogger(__name__)


@shared_task
def scan_stock_alerts():
    """Raise, update and resolve stock alerts for every active material."""
    result = inventory_service.scan_stock_alerts()
    if result['raised'] or result['resolved']:
        notifications.dashboard_changed('inventory')
    logger.info(f"Stock alert scan: {result['raised']} raised, {result['resolved']} resolved")
    return result


@shared_task
def reactivate_snoozed_alerts():
    count = inventory_service.reactivate_snoozed_alerts()
    if count:
        logger.info(f"Reactivated {count} snoozed stock alerts")
    return {'reactivated': count}


@shared_task
def send_reorder_digest():
    """
    Daily list of materials to reorder.

    Sent to the purchase and store roles as an in-app notification and
    by email.
    """
    suggestions = inventory_service.reorder_suggestions()
    if not suggestions:
        return {'suggestions': 0, 'emailed': 0}

    lines = [
        f"{s.material_code} {s.material_name}: order {s.suggested_quantity} "
        f"(stock {s.current_stock}, min {s.min_stock}, {s.priority.value})"
        for s in suggestions
    ]
    urgent = sum(1 for s in suggestions if s.priority.value == 'urgent')

    notifications.notify(
        title=f"{len(suggestions)} materials to reorder",
        message='\n'.join(lines),
        roles=['purchase', 'store'],
        notification_type='stock_alert',
        priority='high' if urgent else 'normal',
    )
    emailed = email_roles(['purchase'], f"Reorder suggestions ({len(suggestions)})", lines)
    return {'suggestions': len(suggestions), 'urgent': urgent, 'emailed': emailed}


@shared_task
def scan_batch_expiry():
    """Notify the store about batches that expired or expire within 30 days."""
    batches = list(inventory_service.expiring_batches())
    if not batches:
        return {'expiring': 0, 'expired': 0}

    expired = [b for b in batches if b.expiry_status == 'expired']
    lines = [
        f"{b.material.code} batch {b.batch_number}: {b.remaining_quantity} left, "
        f"expires {b.expiry_date.isoformat()}"
        for b in batches
    ]
    notifications.notify(
        title=f"{len(batches)} batches expiring ({len(expired)} expired)",
        message='\n'.join(lines),
        roles=['store', 'quality'],
        notification_type='stock_alert',
        priority='high' if expired else 'normal',
    )
    logger.info(f"Batch expiry scan: {len(batches)} expiring, {len(expired)} expired")
    return {'expiring': len(batches) - len(expired), 'expired': len(expired)}
