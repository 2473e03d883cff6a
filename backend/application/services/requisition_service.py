"""
Requisition Service.

Supervisor material requisitions: stock check, approval for issue,
issue from stores and escalation of shortfalls to purchase.
"""

import logging

from django.db import transaction

from domain.inventory import rules
from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from infrastructure.persistence.models import (
    MaterialIssue,
    MaterialIssueItem,
    MaterialRequisition,
    MaterialRequisitionItem,
)

from . import inventory_service, notifications, procurement_service
from .audit import log_action

logger = logging.getLogger(__name__)


@transaction.atomic
def create_requisition(items, user=None, project='', team='', urgency='normal',
                       required_date=None, notes=''):
    """`items` are dicts with material, requested_quantity and optional notes."""
    items = list(items)
    if not items:
        raise ValidationException("A requisition needs at least one item", field='items')

    requisition = MaterialRequisition(
        requested_by=user,
        project=project,
        team=team,
        urgency=urgency,
        required_date=required_date,
        notes=notes,
        created_by=user,
    )
    requisition.log('created', user)
    requisition.save()
    for item in items:
        if item['requested_quantity'] <= 0:
            raise ValidationException("Requested quantity must be greater than zero",
                                      field='requested_quantity', value=item['requested_quantity'])
        MaterialRequisitionItem.objects.create(
            requisition=requisition,
            material=item['material'],
            requested_quantity=item['requested_quantity'],
            notes=item.get('notes', ''),
        )

    log_action('create', requisition, user=user, details={'items': len(items), 'project': project})
    notifications.notify(
        title=f"Material requisition {requisition.number}",
        message=f"{len(items)} item(s) for {project or team or 'production'}",
        roles=['store'],
        notification_type='requisition',
        document=requisition,
        created_by=user,
    )
    return requisition


@transaction.atomic
def check_stock(requisition_id, user=None):
    """Snapshot issuable stock per line and set the availability status."""
    requisition = MaterialRequisition.objects.select_for_update().get(pk=requisition_id)
    items = list(requisition.items.select_related('material'))
    for item in items:
        item.available_quantity = inventory_service.issuable_stock(item.material)
        item.save(update_fields=['available_quantity', 'updated_at'])

    status = rules.requisition_availability(
        (item.requested_quantity, item.available_quantity) for item in items
    )
    requisition.move(status, 'stock_checked', user, note=status.replace('_', ' '))
    log_action('stock_check', requisition, user=user, details={'status': status})
    return requisition


def approve_for_issue(requisition, user=None, note=''):
    if requisition.status not in ('stock_available', 'stock_partial'):
        raise BusinessRuleViolationException(
            'mrq_stock_checked',
            f"Requisition {requisition.number} needs stock before it can be approved for issue"
        )
    requisition.move('ready_to_issue', 'approved_for_issue', user, note)
    log_action('approve', requisition, user=user)
    return requisition


@transaction.atomic
def issue(requisition_id, user=None):
    """
    Issue what is in stock for every line.

    Each line gets min(requested, issuable stock); stock never goes
    negative. Batch-tracked materials are taken FIFO from usable batches.
    """
    requisition = MaterialRequisition.objects.select_for_update().get(pk=requisition_id)
    if requisition.status != 'ready_to_issue':
        raise BusinessRuleViolationException(
            'mrq_ready', f"Requisition {requisition.number} is not ready to issue"
        )

    material_issue = MaterialIssue.objects.create(
        requisition=requisition,
        issued_to=requisition.requested_by,
        issued_by=user,
        project=requisition.project,
        team=requisition.team,
        created_by=user,
    )
    issued_lines = []
    for item in requisition.items.all():
        material = inventory_service.lock_material(item.material_id)
        quantity = rules.issuable_quantity(
            item.requested_quantity - item.issued_quantity, inventory_service.issuable_stock(material)
        )
        if quantity <= 0:
            continue
        taken = inventory_service.issue_from_stock(
            material, quantity, user=user,
            reference=material_issue.number, project=requisition.project,
        )
        for batch, batch_quantity in taken:
            MaterialIssueItem.objects.create(
                issue=material_issue,
                material=material,
                quantity=batch_quantity,
                batch=batch,
            )
        item.issued_quantity += quantity
        item.save(update_fields=['issued_quantity', 'updated_at'])
        inventory_service.evaluate_stock_alert(material)
        issued_lines.append({'material': material.code, 'quantity': str(quantity)})

    if not issued_lines:
        raise BusinessRuleViolationException(
            'mrq_issuable', f"Nothing in stock to issue for {requisition.number}"
        )

    requisition.move('issued', 'issued', user, note=material_issue.number)
    log_action('issue', requisition, user=user, details={
        'issue': material_issue.number,
        'lines': issued_lines,
    })
    if requisition.requested_by_id:
        notifications.notify(
            title=f"Material issued for {requisition.number}",
            message=", ".join(f"{ln['material']} x {ln['quantity']}" for ln in issued_lines),
            user=requisition.requested_by,
            notification_type='material_issued',
            document=material_issue,
            created_by=user,
        )
    notifications.dashboard_changed('inventory')
    logger.info(f"Issued {material_issue.number} for requisition {requisition.number}")
    return material_issue


def reject(requisition, user=None, reason=''):
    if not reason:
        raise ValidationException("Rejection reason is required", field='reason')
    requisition.move('rejected', 'rejected', user, note=reason, rejection_reason=reason)
    log_action('reject', requisition, user=user, details={'reason': reason})
    if requisition.requested_by_id:
        notifications.notify(
            title=f"Requisition {requisition.number} rejected",
            message=reason,
            user=requisition.requested_by,
            notification_type='rejected',
            document=requisition,
            created_by=user,
        )
    return requisition


@transaction.atomic
def send_to_purchase(requisition_id, user=None):
    """Raise a material request for the lines stock cannot cover."""
    requisition = MaterialRequisition.objects.select_for_update().get(pk=requisition_id)
    short = [item for item in requisition.items.select_related('material') if item.shortfall > 0]
    if not short:
        raise BusinessRuleViolationException(
            'mrq_shortfall', f"Requisition {requisition.number} has no shortfall"
        )

    request = procurement_service.create_material_request(
        [
            {'material': item.material, 'quantity': item.shortfall, 'notes': item.notes}
            for item in short
        ],
        user=user,
        department='production',
        urgency=requisition.urgency,
        required_date=requisition.required_date,
        purpose=f"Shortfall for requisition {requisition.number}"
                + (f" ({requisition.project})" if requisition.project else ''),
        source_requisition=requisition,
    )
    requisition.move('sent_to_purchase', 'sent_to_purchase', user, note=request.number)
    log_action('convert', requisition, user=user, details={'material_request': request.number})
    return request
