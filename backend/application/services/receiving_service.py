"""
Receiving Service.

Goods receipt against a purchase order, quality inspection of the
received lines and posting of the accepted quantity to stock.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from domain.procurement import rules
from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from infrastructure.persistence.models import (
    GoodsReceipt,
    GoodsReceiptItem,
    PurchaseOrder,
    PurchaseOrderItem,
)

from . import inventory_service, notifications
from .access import require_permission
from .audit import log_action

logger = logging.getLogger(__name__)


@transaction.atomic
def create_goods_receipt(order_id, lines, user=None, received_date=None, vehicle_number='',
                         supplier_dc_number='', supplier_invoice_number='', notes=''):
    """
    Record goods arriving against a purchase order.

    `lines` are dicts with purchase_order_item (instance or id),
    received_quantity and optional batch_number / expiry_date. The
    received quantities are added to the PO lines straight away.
    """
    order = PurchaseOrder.objects.select_for_update().get(pk=order_id)
    if order.status not in PurchaseOrder.RECEIVABLE_STATUSES:
        raise BusinessRuleViolationException(
            'po_receivable',
            f"Cannot receive against purchase order {order.number} in status '{order.status}'"
        )
    lines = list(lines)
    if not lines:
        raise ValidationException("A goods receipt needs at least one line", field='items')

    order_items = {
        str(item.pk): item
        for item in PurchaseOrderItem.objects.select_for_update().filter(order=order).select_related('material')
    }

    receipt = GoodsReceipt.objects.create(
        purchase_order=order,
        received_by=user,
        received_date=received_date or timezone.localdate(),
        vehicle_number=vehicle_number,
        supplier_dc_number=supplier_dc_number,
        supplier_invoice_number=supplier_invoice_number,
        notes=notes,
        created_by=user,
    )

    for line in lines:
        ref = line['purchase_order_item']
        po_item = order_items.get(str(getattr(ref, 'pk', ref)))
        if po_item is None:
            raise ValidationException("Line is not on this purchase order",
                                      field='purchase_order_item', value=ref)
        quantity = rules.validate_receipt_quantity(
            po_item.quantity, po_item.received_quantity, line['received_quantity']
        )
        GoodsReceiptItem.objects.create(
            receipt=receipt,
            purchase_order_item=po_item,
            material=po_item.material,
            ordered_quantity=po_item.quantity,
            received_quantity=quantity,
            batch_number=line.get('batch_number', ''),
            expiry_date=line.get('expiry_date'),
        )
        po_item.received_quantity += quantity
        po_item.save(update_fields=['received_quantity', 'updated_at'])

    order.apply_receipt_status()

    log_action('receive', receipt, user=user, details={
        'order': order.number,
        'order_status': order.status,
        'lines': len(lines),
    })
    notifications.notify(
        title=f"Goods received: {receipt.number}",
        message=f"Against {order.number} from {order.supplier.name}, awaiting quality inspection",
        roles=['quality', 'store'],
        notification_type='goods_received',
        document=receipt,
        created_by=user,
    )
    logger.info(f"GRN {receipt.number} recorded against {order.number} ({order.status})")
    return receipt


@transaction.atomic
def inspect_goods_receipt(receipt_id, results, user):
    """
    Record the QC verdict for every line of a receipt.

    `results` maps receipt item ids to dicts with accepted_quantity,
    rejected_quantity and optional rejection_reason. The receipt becomes
    verified, or rejected when nothing was accepted.
    """
    receipt = GoodsReceipt.objects.select_for_update().get(pk=receipt_id)
    require_permission(user, 'quality:write', receipt.number)
    if receipt.status not in ('pending', 'quality_check'):
        raise BusinessRuleViolationException(
            'grn_inspectable', f"Goods receipt {receipt.number} has already been inspected"
        )

    results = {str(key): value for key, value in results.items()}
    items = list(receipt.items.select_related('material'))
    missing = [str(item.pk) for item in items if str(item.pk) not in results]
    if missing:
        raise ValidationException("Every received line needs a QC result", field='items', value=missing)

    accepted_total = Decimal('0')
    verdicts = {}
    for item in items:
        result = results[str(item.pk)]
        accepted = Decimal(str(result.get('accepted_quantity', 0)))
        rejected = Decimal(str(result.get('rejected_quantity', 0)))
        verdict = item.record_inspection(accepted, rejected, result.get('rejection_reason', ''))
        verdicts[item.material.code] = verdict.value
        accepted_total += accepted

    target = 'verified' if accepted_total > 0 else 'rejected'
    receipt.transition_to(target, inspected_by=user, inspected_at=timezone.now())

    log_action('inspect', receipt, user=user, details={'result': target, 'lines': verdicts})
    notifications.notify(
        title=f"QC {'passed' if target == 'verified' else 'rejected'}: {receipt.number}",
        message=", ".join(f"{code}: {status}" for code, status in verdicts.items()),
        roles=['store', 'purchase'],
        notification_type='qc_result',
        document=receipt,
        created_by=user,
    )
    return receipt


@transaction.atomic
def post_to_stock(receipt_id, user=None):
    """
    Add the accepted quantities of a verified receipt to stock.
    """
    receipt = GoodsReceipt.objects.select_for_update().get(pk=receipt_id)
    require_permission(user, 'inventory:write', receipt.number)
    if receipt.status != 'verified':
        raise BusinessRuleViolationException(
            'grn_verified', f"Goods receipt {receipt.number} must be verified before posting to stock"
        )

    order = receipt.purchase_order
    posted = []
    for item in receipt.items.select_related('purchase_order_item'):
        if item.accepted_quantity <= 0:
            continue
        material = inventory_service.lock_material(item.material_id)
        inventory_service.receive_into_stock(
            material,
            item.accepted_quantity,
            unit_price=item.purchase_order_item.unit_price,
            user=user,
            reference=receipt.number,
            batch_number=item.batch_number,
            expiry_date=item.expiry_date,
            goods_receipt=receipt,
        )
        inventory_service.evaluate_stock_alert(material, user=user, purchase_order=order)
        posted.append({'material': material.code, 'quantity': str(item.accepted_quantity)})

    receipt.transition_to('stock_updated', posted_by=user, posted_at=timezone.now())

    log_action('post_stock', receipt, user=user, details={'lines': posted})
    notifications.dashboard_changed('inventory')
    logger.info(f"GRN {receipt.number} posted to stock: {len(posted)} line(s)")
    return receipt


def send_to_quality(receipt, user=None):
    receipt.send_to_quality(user)
    log_action('status_change', receipt, user=user, details={'status': receipt.status})
    return receipt


def complete_receipt(receipt, user=None):
    receipt.complete(user)
    log_action('status_change', receipt, user=user, details={'status': receipt.status})
    return receipt
