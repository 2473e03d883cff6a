"""
Dispatch Service.

Delivery challans and dispatch records for finished goods leaving
the factory.
"""

import logging

from django.db import transaction
from django.utils import timezone

from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from infrastructure.persistence.models import (
    DeliveryChallan,
    DeliveryChallanItem,
    DispatchRecord,
    FinishedGood,
)

from . import business_settings, notifications
from .access import require_permission
from .audit import log_action

logger = logging.getLogger(__name__)


@transaction.atomic
def create_challan(items, user=None, **fields):
    """
    Draft a delivery challan.

    `items` are dicts with description, quantity and optional unit,
    item_code, hsn_code and finished_good. Consignor details are copied
    from the company settings.
    """
    items = list(items)
    if not items:
        raise ValidationException("A delivery challan needs at least one item", field='items')

    challan = DeliveryChallan.objects.create(
        consignor=business_settings.company(),
        created_by=user,
        **fields,
    )
    for item in items:
        good = item.get('finished_good')
        DeliveryChallanItem.objects.create(
            challan=challan,
            finished_good=good,
            item_code=item.get('item_code') or (good.product_code if good else ''),
            description=item.get('description') or (good.product_name if good else ''),
            hsn_code=item.get('hsn_code') or (good.hsn_code if good else ''),
            quantity=item['quantity'],
            unit=item.get('unit') or (good.unit if good else 'nos'),
        )

    log_action('create', challan, user=user, details={'consignee': challan.consignee_name, 'items': len(items)})
    return challan


@transaction.atomic
def dispatch_challan(challan_id, user=None):
    """
    Send a challan on its way.

    Linked finished goods must be in stock; they become dispatched and a
    dispatch record in transit is opened for the consignee.
    """
    challan = DeliveryChallan.objects.select_for_update().get(pk=challan_id)
    require_permission(user, 'dispatch:write', challan.number)

    goods = list(FinishedGood.objects.select_for_update().filter(challan_items__challan=challan).distinct())
    not_ready = [g.number for g in goods if g.status != 'in_stock']
    if not_ready:
        raise BusinessRuleViolationException(
            'fg_in_stock', f"Finished goods not in stock: {', '.join(not_ready)}"
        )

    now = timezone.now()
    challan.transition_to('dispatched', dispatched_at=now, updated_by=user)
    for good in goods:
        good.mark_dispatched()

    record = DispatchRecord.objects.create(
        challan=challan,
        finished_good=goods[0] if len(goods) == 1 else None,
        customer=challan.consignee_name,
        destination=challan.consignee_address,
        quantity=challan.total_quantity,
        status='in_transit',
        dispatch_date=now,
        dispatched_by=user,
        tracking_reference=challan.lr_number or challan.vehicle_number,
        created_by=user,
    )

    log_action('dispatch', challan, user=user, details={
        'finished_goods': [g.number for g in goods],
        'vehicle': challan.vehicle_number,
    })
    notifications.notify(
        title=f"{challan.number} dispatched to {challan.consignee_name}",
        roles=['dispatch', 'md'],
        notification_type='dispatch',
        document=challan,
        created_by=user,
    )
    notifications.dashboard_changed('dispatch')
    logger.info(f"Challan {challan.number} dispatched, record {record.pk}")
    return challan


@transaction.atomic
def deliver_challan(challan_id, user=None, received_by_name=''):
    challan = DeliveryChallan.objects.select_for_update().get(pk=challan_id)
    require_permission(user, 'dispatch:write', challan.number)
    challan.transition_to(
        'delivered', delivered_at=timezone.now(), received_by_name=received_by_name, updated_by=user
    )
    for record in challan.dispatch_records.filter(status='in_transit'):
        record.mark_delivered(user)
    log_action('deliver', challan, user=user, details={'received_by': received_by_name})
    notifications.dashboard_changed('dispatch')
    return challan


def cancel_challan(challan, user=None):
    challan.cancel(user)
    log_action('cancel', challan, user=user)
    return challan


def create_dispatch_record(user=None, **fields):
    good = fields.get('finished_good')
    if good is not None and good.status not in ('qc_passed', 'in_stock'):
        raise BusinessRuleViolationException(
            'fg_ready', f"{good.number} has not passed QC"
        )
    record = DispatchRecord.objects.create(created_by=user, **fields)
    log_action('create', record, user=user, details={'customer': record.customer})
    return record


@transaction.atomic
def start_transit(record, user=None, tracking_reference=''):
    require_permission(user, 'dispatch:write', str(record.pk))
    record.start_transit(user, tracking_reference)
    good = record.finished_good
    if good is not None and good.status != 'dispatched':
        good.mark_dispatched()
    log_action('dispatch', record, user=user, details={'customer': record.customer})
    notifications.notify(
        title=f"Shipment to {record.customer} in transit",
        roles=['dispatch'],
        notification_type='dispatch',
        document=record,
        created_by=user,
    )
    notifications.dashboard_changed('dispatch')
    return record


def mark_delivered(record, user=None):
    require_permission(user, 'dispatch:write', str(record.pk))
    record.mark_delivered(user)
    log_action('deliver', record, user=user, details={'customer': record.customer})
    notifications.dashboard_changed('dispatch')
    return record
