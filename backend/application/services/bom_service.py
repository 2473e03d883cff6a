"""
BOM Service.

Stock check of a Bill of Materials and the purchase requisition that
covers its shortfall.
"""

import logging

from django.db import transaction

from domain.procurement import rules
from domain.shared.exceptions import BusinessRuleViolationException
from infrastructure.persistence.models import (
    BillOfMaterials,
    PurchaseRequisition,
    PurchaseRequisitionItem,
)

from . import notifications
from .audit import log_action

logger = logging.getLogger(__name__)


def _bom_lines(bom):
    items = bom.items.select_related('material', 'material__preferred_supplier')
    return [
        rules.BOMLine(
            material_id=item.material_id,
            material_code=item.material.code,
            material_name=item.material.name,
            required_quantity=item.required_quantity,
            current_stock=item.material.current_stock,
            unit=item.unit or item.material.unit,
            last_price=item.material.last_price,
            average_price=item.material.average_price,
            supplier_id=item.material.preferred_supplier_id,
        )
        for item in items
    ]


def stock_check_payload(bom, result):
    """Serializable view of a stock check result."""
    return {
        'bom_id': str(bom.pk),
        'bom_number': bom.number,
        'status': bom.status,
        'items_available': result.items_available,
        'items_short': result.items_short,
        'has_shortfall': result.has_shortfall,
        'lines': [
            {
                'material_id': str(ln.line.material_id),
                'material_code': ln.line.material_code,
                'material_name': ln.line.material_name,
                'required_quantity': str(ln.line.required_quantity),
                'current_stock': str(ln.line.current_stock),
                'available_quantity': str(ln.available_quantity),
                'shortfall': str(ln.shortfall),
                'is_available': ln.is_available,
            }
            for ln in result.lines
        ],
        'pr_lines': [
            {
                'material_id': str(pl.material_id),
                'material_code': pl.material_code,
                'quantity': str(pl.quantity),
                'unit': pl.unit,
                'estimated_unit_price': str(pl.estimated_unit_price),
                'estimated_total': str(pl.estimated_total),
                'suggested_supplier_id': str(pl.suggested_supplier_id) if pl.suggested_supplier_id else None,
            }
            for pl in result.pr_lines()
        ],
    }


@transaction.atomic
def check_bom_stock(bom_id, user=None):
    """
    Compare every BOM line with current stock.

    Stores the snapshot on the BOM and returns (bom, StockCheckResult).
    """
    bom = BillOfMaterials.objects.select_for_update().get(pk=bom_id)
    result = rules.check_stock(_bom_lines(bom))
    bom.record_stock_check(result, user)

    log_action('stock_check', bom, user=user, details={
        'items_available': result.items_available,
        'items_short': result.items_short,
    })
    logger.info(f"Stock check {bom.number}: {result.items_available} available, {result.items_short} short")
    return bom, result


@transaction.atomic
def generate_purchase_requisition(bom_id, user=None, priority='normal', required_date=None):
    """
    Raise one purchase requisition for the short lines of a checked BOM.

    Stock is re-read so the requisition reflects the latest position.
    """
    bom = BillOfMaterials.objects.select_for_update().get(pk=bom_id)
    if bom.status != 'stock_checked':
        raise BusinessRuleViolationException(
            'bom_stock_checked', f"BOM {bom.number} must be stock checked before raising a PR"
        )

    result = rules.check_stock(_bom_lines(bom))
    pr_lines = result.pr_lines()
    if not pr_lines:
        raise BusinessRuleViolationException(
            'bom_has_shortfall', f"BOM {bom.number} has no shortfall, nothing to purchase"
        )

    requisition = PurchaseRequisition.objects.create(
        source_type='bom',
        source_reference=bom.number,
        bom=bom,
        priority=priority,
        required_date=required_date or bom.required_date,
        requested_by=user,
        created_by=user,
        notes=f"Shortfall for {bom.product_name}" + (f" ({bom.project_name})" if bom.project_name else ''),
    )
    for line in pr_lines:
        PurchaseRequisitionItem.objects.create(
            requisition=requisition,
            material_id=line.material_id,
            quantity=line.quantity,
            unit=line.unit,
            estimated_unit_price=line.estimated_unit_price,
            suggested_supplier_id=line.suggested_supplier_id,
        )

    bom.transition_to('pr_generated', updated_by=user)

    log_action('generate_pr', bom, user=user, details={
        'requisition': requisition.number,
        'lines': len(pr_lines),
        'estimated_total': str(sum((pl.estimated_total for pl in pr_lines), rules.ZERO)),
    })
    notifications.notify(
        title=f"Purchase requisition {requisition.number} raised",
        message=f"{len(pr_lines)} short line(s) from BOM {bom.number}",
        roles=['purchase'],
        notification_type='pr_created',
        document=requisition,
        priority=priority,
        created_by=user,
    )
    logger.info(f"PR {requisition.number} generated from BOM {bom.number}")
    return requisition


def submit_bom(bom, user=None):
    bom.submit(user)
    log_action('submit', bom, user=user)
    return bom


def complete_bom(bom, user=None):
    bom.transition_to('completed', updated_by=user)
    log_action('status_change', bom, user=user, details={'status': 'completed'})
    return bom


def cancel_bom(bom, user=None):
    bom.transition_to('cancelled', updated_by=user)
    log_action('cancel', bom, user=user)
    return bom
