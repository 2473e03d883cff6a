"""
Procurement Service.

Material requests, purchase requisitions, enquiries and quotes,
purchase orders with the MD approval threshold, and supplier invoices.
"""

import logging

from django.db import transaction

from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from domain.shared.value_objects import Urgency
from infrastructure.persistence.models import (
    Enquiry,
    MaterialRequest,
    MaterialRequestItem,
    PurchaseInvoice,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseRequisition,
    PurchaseRequisitionItem,
    SupplierQuote,
    SupplierQuoteItem,
)

from . import business_settings, notifications
from .access import require_permission
from .audit import log_action

logger = logging.getLogger(__name__)


# =============================================================================
# MATERIAL REQUESTS
# =============================================================================

@transaction.atomic
def create_material_request(items, user=None, department='', urgency='normal',
                            required_date=None, purpose='', source_requisition=None):
    """
    Raise a material request.

    `items` is an iterable of dicts with material, quantity and optional
    unit / notes.
    """
    items = list(items)
    if not items:
        raise ValidationException("A material request needs at least one item", field='items')
    if urgency not in {u.value for u in Urgency}:
        raise ValidationException(f"Unknown urgency '{urgency}'", field='urgency', value=urgency)

    request = MaterialRequest.objects.create(
        requested_by=user,
        department=department or (user.department if user else ''),
        urgency=urgency,
        required_date=required_date,
        purpose=purpose,
        source_requisition=source_requisition,
        created_by=user,
    )
    for item in items:
        if item['quantity'] <= 0:
            raise ValidationException("Quantity must be greater than zero",
                                      field='quantity', value=item['quantity'])
        MaterialRequestItem.objects.create(
            request=request,
            material=item['material'],
            quantity=item['quantity'],
            unit=item.get('unit') or item['material'].unit,
            notes=item.get('notes', ''),
        )

    log_action('create', request, user=user, details={'items': len(items), 'urgency': urgency})
    notifications.notify(
        title=f"Material request {request.number}",
        message=f"{len(items)} item(s) requested by {request.department or user}",
        roles=['purchase'],
        notification_type='requisition',
        document=request,
        priority=Urgency(urgency).to_priority().value,
        created_by=user,
    )
    return request


def approve_material_request(request, user):
    require_permission(user, 'purchase:write', request.number)
    request.approve(user)
    log_action('approve', request, user=user)
    if request.requested_by_id:
        notifications.notify(
            title=f"Material request {request.number} approved",
            user=request.requested_by,
            notification_type='approved',
            document=request,
            created_by=user,
        )
    return request


def reject_material_request(request, user, reason):
    require_permission(user, 'purchase:write', request.number)
    request.reject(user, reason)
    log_action('reject', request, user=user, details={'reason': reason})
    if request.requested_by_id:
        notifications.notify(
            title=f"Material request {request.number} rejected",
            message=reason,
            user=request.requested_by,
            notification_type='rejected',
            document=request,
            created_by=user,
        )
    return request


@transaction.atomic
def convert_material_request(request, user=None):
    """Turn an approved material request into a purchase requisition."""
    require_permission(user, 'purchase:write', request.number)
    request = MaterialRequest.objects.select_for_update().get(pk=request.pk)
    if request.status != 'approved':
        raise BusinessRuleViolationException(
            'mr_approved', f"Only an approved material request can be converted ({request.number})"
        )

    requisition = PurchaseRequisition.objects.create(
        source_type='material_request',
        source_reference=request.number,
        material_request=request,
        priority=request.priority.value,
        required_date=request.required_date,
        requested_by=request.requested_by,
        created_by=user,
        notes=request.purpose,
    )
    for item in request.items.select_related('material'):
        PurchaseRequisitionItem.objects.create(
            requisition=requisition,
            material=item.material,
            quantity=item.quantity,
            unit=item.unit,
            estimated_unit_price=item.material.unit_price,
            suggested_supplier=item.material.preferred_supplier,
            notes=item.notes,
        )

    request.transition_to('converted_to_pr', updated_by=user)
    log_action('convert', request, user=user, details={'requisition': requisition.number})
    log_action('create', requisition, user=user, details={'source': request.number})
    logger.info(f"Material request {request.number} converted to {requisition.number}")
    return requisition


# =============================================================================
# PURCHASE REQUISITIONS
# =============================================================================

@transaction.atomic
def create_requisition(items, user=None, source_type='manual', source_reference='',
                       priority='normal', required_date=None, notes=''):
    items = list(items)
    if not items:
        raise ValidationException("A purchase requisition needs at least one item", field='items')

    requisition = PurchaseRequisition.objects.create(
        source_type=source_type,
        source_reference=source_reference,
        priority=priority,
        required_date=required_date,
        requested_by=user,
        created_by=user,
        notes=notes,
    )
    for item in items:
        material = item['material']
        PurchaseRequisitionItem.objects.create(
            requisition=requisition,
            material=material,
            quantity=item['quantity'],
            unit=item.get('unit') or material.unit,
            estimated_unit_price=item.get('estimated_unit_price') or material.unit_price,
            suggested_supplier=item.get('suggested_supplier') or material.preferred_supplier,
            notes=item.get('notes', ''),
        )

    log_action('create', requisition, user=user, details={'source': source_type, 'items': len(items)})
    notifications.notify(
        title=f"Purchase requisition {requisition.number} raised",
        roles=['purchase'],
        notification_type='pr_created',
        document=requisition,
        priority=priority,
        created_by=user,
    )
    return requisition


def assign_requisition(requisition, assignee, user=None):
    requisition.assign(assignee, user)
    log_action('update', requisition, user=user, details={'assigned_to': str(assignee)})
    notifications.notify(
        title=f"Purchase requisition {requisition.number} assigned to you",
        user=assignee,
        notification_type='pr_created',
        document=requisition,
        priority=requisition.priority,
        created_by=user,
    )
    return requisition


def cancel_requisition(requisition, user=None):
    requisition.cancel(user)
    log_action('cancel', requisition, user=user)
    return requisition


# =============================================================================
# ENQUIRIES & QUOTES
# =============================================================================

@transaction.atomic
def create_enquiry(requisition, suppliers, user=None, due_date=None, notes=''):
    suppliers = list(suppliers)
    if not suppliers:
        raise ValidationException("Select at least one supplier", field='suppliers')
    if requisition.status not in ('pending_enquiry', 'enquiry_in_progress', 'quotes_received'):
        raise BusinessRuleViolationException(
            'pr_open', f"Purchase requisition {requisition.number} is {requisition.status}"
        )

    enquiry = Enquiry.objects.create(
        requisition=requisition,
        due_date=due_date,
        notes=notes,
        created_by=user,
    )
    enquiry.suppliers.set(suppliers)
    if requisition.status == 'pending_enquiry':
        requisition.transition_to('enquiry_in_progress', updated_by=user)

    log_action('create', enquiry, user=user, details={
        'requisition': requisition.number,
        'suppliers': [s.code for s in suppliers],
    })
    return enquiry


@transaction.atomic
def record_quote(enquiry, supplier, prices, user=None, quote_reference='',
                 delivery_days=None, valid_until=None, notes=''):
    """
    Store a supplier's quote.

    `prices` maps requisition item ids to unit prices; lines left out are
    not quoted.
    """
    if enquiry.status in ('closed', 'cancelled'):
        raise BusinessRuleViolationException(
            'enquiry_open', f"Enquiry {enquiry.number} is {enquiry.status}"
        )
    quote, _ = SupplierQuote.objects.update_or_create(
        enquiry=enquiry,
        supplier=supplier,
        defaults={
            'quote_reference': quote_reference,
            'delivery_days': delivery_days,
            'valid_until': valid_until,
            'notes': notes,
            'created_by': user,
        },
    )
    quote.items.all().delete()
    lines = {str(item.pk): item for item in enquiry.requisition.items.all()}
    for item_id, unit_price in prices.items():
        line = lines.get(str(item_id))
        if line is None:
            raise ValidationException("Quoted line is not on the requisition", field='prices', value=item_id)
        SupplierQuoteItem.objects.create(
            quote=quote,
            requisition_item=line,
            quantity=line.quantity,
            unit_price=unit_price,
        )

    enquiry.transition_to('quoted', updated_by=user)
    requisition = enquiry.requisition
    if requisition.status in ('enquiry_in_progress', 'quotes_received'):
        requisition.transition_to('quotes_received', updated_by=user)

    log_action('update', enquiry, user=user, details={
        'quote_from': supplier.code,
        'total': str(quote.total),
    })
    return quote


def select_quote(enquiry, quote, user=None):
    enquiry.select_quote(quote, user)
    log_action('update', enquiry, user=user, details={
        'selected_quote': quote.supplier.code,
        'total': str(quote.total),
    })
    return quote


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

@transaction.atomic
def create_purchase_order(supplier, items, user=None, requisition=None, enquiry=None,
                          expected_delivery_date=None, delivery_address='',
                          payment_terms='', gst_rate=None, notes=''):
    """
    Draft a purchase order.

    `items` are dicts with material, quantity, unit_price and optional
    requisition_item / description. Linking a requisition moves it to
    po_created.
    """
    items = list(items)
    if not items:
        raise ValidationException("A purchase order needs at least one item", field='items')

    order = PurchaseOrder.objects.create(
        supplier=supplier,
        requisition=requisition,
        enquiry=enquiry,
        expected_delivery_date=expected_delivery_date,
        delivery_address=delivery_address or business_settings.company().get('address', ''),
        payment_terms=payment_terms or supplier.payment_terms,
        gst_rate=business_settings.gst_rate() if gst_rate is None else gst_rate,
        notes=notes,
        created_by=user,
    )
    for item in items:
        if item['quantity'] <= 0:
            raise ValidationException("Quantity must be greater than zero",
                                      field='quantity', value=item['quantity'])
        if item['unit_price'] < 0:
            raise ValidationException("Unit price cannot be negative",
                                      field='unit_price', value=item['unit_price'])
        PurchaseOrderItem.objects.create(
            order=order,
            material=item['material'],
            requisition_item=item.get('requisition_item'),
            description=item.get('description') or item['material'].name,
            quantity=item['quantity'],
            unit=item.get('unit', ''),
            unit_price=item['unit_price'],
        )
    order.recalculate_totals()

    if requisition is not None and requisition.status != 'po_created':
        requisition.transition_to('po_created', updated_by=user)

    log_action('create', order, user=user, details={
        'supplier': supplier.code,
        'total': str(order.total),
        'requisition': requisition.number if requisition else None,
    })
    notifications.notify(
        title=f"Purchase order {order.number} drafted",
        message=f"{supplier.name}, total {order.total}",
        roles=['purchase'],
        notification_type='po_created',
        document=order,
        created_by=user,
    )
    return order


def create_order_from_requisition(requisition, supplier, user=None, unit_prices=None, **kwargs):
    """PO for every requisition line, priced from `unit_prices` or the estimates."""
    unit_prices = unit_prices or {}
    items = [
        {
            'material': line.material,
            'requisition_item': line,
            'quantity': line.quantity,
            'unit': line.unit,
            'unit_price': unit_prices.get(str(line.pk), line.estimated_unit_price),
        }
        for line in requisition.items.select_related('material')
    ]
    return create_purchase_order(supplier, items, user=user, requisition=requisition, **kwargs)


def create_order_from_quote(quote, user=None, **kwargs):
    """PO from the selected quote of an enquiry."""
    if not quote.is_selected:
        raise BusinessRuleViolationException('quote_selected', "Select the quote before ordering")
    items = [
        {
            'material': line.requisition_item.material,
            'requisition_item': line.requisition_item,
            'quantity': line.quantity,
            'unit': line.requisition_item.unit,
            'unit_price': line.unit_price,
        }
        for line in quote.items.select_related('requisition_item__material')
    ]
    enquiry = quote.enquiry
    order = create_purchase_order(
        quote.supplier, items, user=user,
        requisition=enquiry.requisition, enquiry=enquiry, **kwargs
    )
    enquiry.transition_to('closed', updated_by=user)
    return order


@transaction.atomic
def submit_order(order, user=None):
    """
    Submit for approval.

    Orders at or above the threshold go to the MD; smaller orders are
    approved on the spot.
    """
    require_permission(user, 'purchase:write', order.number)
    threshold = business_settings.approval_threshold()
    needs_md = order.submit_for_approval(user, threshold)

    log_action('submit', order, user=user, details={
        'total': str(order.total),
        'threshold': str(threshold),
        'requires_md_approval': needs_md,
    })
    if needs_md:
        notifications.notify(
            title=f"PO {order.number} awaits your approval",
            message=f"{order.supplier.name}: total {order.total} (threshold {threshold})",
            roles=['md'],
            notification_type='approval_required',
            document=order,
            priority='high',
            created_by=user,
        )
    else:
        log_action('approve', order, user=user, details={'auto': True})
    notifications.dashboard_changed('purchase')
    return order


def lock_order(order_id):
    """Re-read a purchase order under a row lock so decisions see its current status."""
    return PurchaseOrder.objects.select_for_update().get(pk=order_id)


def _notify_decision(order, user, approved, comments=''):
    verb = 'approved' if approved else 'rejected'
    notifications.notify(
        title=f"PO {order.number} {verb}",
        message=comments,
        roles=['purchase'],
        notification_type=verb,
        document=order,
        created_by=user,
    )
    if order.created_by_id and order.created_by_id != getattr(user, 'pk', None):
        notifications.notify(
            title=f"Your PO {order.number} was {verb}",
            message=comments,
            user=order.created_by,
            notification_type=verb,
            document=order,
            created_by=user,
        )


@transaction.atomic
def approve_order(order, user, comments=''):
    require_permission(user, 'purchase:approve', order.number)
    order = lock_order(order.pk)
    order.approve(user, comments)
    log_action('approve', order, user=user, details={'comments': comments, 'total': str(order.total)})
    _notify_decision(order, user, True, comments)
    notifications.dashboard_changed('purchase')
    logger.info(f"PO {order.number} approved by {user}")
    return order


@transaction.atomic
def reject_order(order, user, reason):
    require_permission(user, 'purchase:approve', order.number)
    order = lock_order(order.pk)
    order.reject(user, reason)
    log_action('reject', order, user=user, details={'reason': reason})
    _notify_decision(order, user, False, reason)
    notifications.dashboard_changed('purchase')
    logger.info(f"PO {order.number} rejected by {user}")
    return order


def mark_order_placed(order, user=None):
    order.mark_ordered(user)
    log_action('status_change', order, user=user, details={'status': 'ordered'})
    return order


def cancel_order(order, user=None, reason=''):
    order.cancel(user, reason)
    log_action('cancel', order, user=user, details={'reason': reason})
    return order


def reopen_order(order, user=None):
    order.reopen(user)
    log_action('status_change', order, user=user, details={'status': 'draft'})
    return order


# =============================================================================
# INVOICES
# =============================================================================

def create_invoice(order, supplier_invoice_number, invoice_date, subtotal, gst_amount,
                   user=None, goods_receipt=None, due_date=None, total=None):
    if order.status not in ('partially_received', 'received', 'ordered', 'approved'):
        raise BusinessRuleViolationException(
            'po_invoiceable', f"Purchase order {order.number} is {order.status}"
        )
    invoice = PurchaseInvoice.objects.create(
        purchase_order=order,
        goods_receipt=goods_receipt,
        supplier_invoice_number=supplier_invoice_number,
        invoice_date=invoice_date,
        due_date=due_date,
        subtotal=subtotal,
        gst_amount=gst_amount,
        total=total or 0,
        created_by=user,
    )
    log_action('create', invoice, user=user, details={
        'order': order.number,
        'total': str(invoice.total),
        'mismatch': str(invoice.amount_mismatch),
    })
    return invoice


def move_invoice(invoice, action, user=None, **kwargs):
    """Apply one of verify / request_payment / mark_paid / dispute."""
    handlers = {
        'verify': invoice.verify,
        'request_payment': invoice.request_payment,
        'mark_paid': invoice.mark_paid,
        'dispute': invoice.dispute,
    }
    if action not in handlers:
        raise ValidationException(f"Unknown invoice action '{action}'", field='action', value=action)
    handlers[action](user=user, **kwargs)
    log_action('status_change', invoice, user=user, details={'action': action, 'status': invoice.status})
    return invoice
