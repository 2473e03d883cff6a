"""
Inventory Service.

Every change to a material's on-hand quantity goes through this module:
it locks the material row, writes a StockMovement with the running
balance and re-evaluates the material's stock alert.
"""

import io
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from domain.inventory import rules
from domain.procurement.rules import running_average_price
from domain.shared.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientStockException,
    ValidationException,
)
from domain.shared.value_objects import AlertLevel, ExpiryStatus
from infrastructure.persistence.models import (
    Material,
    MaterialIssue,
    MaterialIssueItem,
    MaterialReservation,
    MaterialReturn,
    StockAdjustment,
    StockAlert,
    StockBatch,
    StockMovement,
)

from . import notifications
from .audit import log_action

logger = logging.getLogger(__name__)


# =============================================================================
# MOVEMENTS
# =============================================================================

def lock_material(material_id):
    try:
        return Material.objects.select_for_update().get(pk=material_id)
    except Material.DoesNotExist:
        raise EntityNotFoundException("Material", material_id)


def record_movement(material, movement_type, quantity, user=None, reference='',
                    batch=None, project='', notes=''):
    """
    Apply a signed quantity to a locked material and log the movement.

    The caller holds the row lock (see lock_material).
    """
    quantity = Decimal(str(quantity))
    new_balance = material.current_stock + quantity
    if new_balance < 0:
        raise InsufficientStockException(material.code, str(-quantity), str(material.current_stock))
    material.current_stock = new_balance
    material.save(update_fields=['current_stock', 'updated_at'])
    return StockMovement.objects.create(
        material=material,
        movement_type=movement_type,
        quantity=quantity,
        balance_after=new_balance,
        batch=batch,
        reference=reference or '',
        project=project or '',
        performed_by=user,
        notes=notes or '',
    )


@transaction.atomic
def adjust_stock(material_id, new_quantity, reason='physical_count', notes='', user=None):
    """
    Set a material's stock to a counted quantity.

    Batch-tracked materials keep their batches in step: a surplus becomes
    a new batch numbered after the adjustment, a shortfall is written off
    the batches (see write_down_batches). Returns the StockAdjustment.
    """
    new_quantity = Decimal(str(new_quantity))
    if new_quantity < 0:
        raise ValidationException("Stock quantity cannot be negative",
                                  field='new_quantity', value=new_quantity)

    material = lock_material(material_id)
    previous = material.current_stock
    difference = new_quantity - previous

    adjustment = StockAdjustment.objects.create(
        material=material,
        previous_quantity=previous,
        new_quantity=new_quantity,
        difference=difference,
        reason=reason,
        notes=notes or '',
        adjusted_by=user,
        created_by=user,
    )
    batch = None
    if material.is_batch_tracked and difference > 0:
        batch = StockBatch.objects.create(
            material=material,
            batch_number=adjustment.number,
            received_quantity=difference,
            remaining_quantity=difference,
            created_by=user,
        )
    elif material.is_batch_tracked and difference < 0:
        write_down_batches(material, -difference)
    record_movement(
        material, 'adjustment', difference, user=user,
        reference=adjustment.number, batch=batch, notes=notes,
    )
    evaluate_stock_alert(material)

    log_action('adjust', adjustment, user=user, details={
        'material': material.code,
        'previous': str(previous),
        'new': str(new_quantity),
        'reason': reason,
    })
    notifications.dashboard_changed('inventory')
    logger.info(f"Adjusted {material.code} from {previous} to {new_quantity} ({reason})")
    return adjustment


def write_down_batches(material, quantity, today=None):
    """
    Take a counted shortfall off a material's batches.

    Expired and blocked batches are written down first, then the oldest.
    Returns the part of `quantity` no batch held.
    """
    today = today or timezone.localdate()

    def order(batch):
        usable = (batch.qc_status == 'passed'
                  and rules.expiry_status(batch.expiry_date, today) != ExpiryStatus.EXPIRED)
        return (usable, batch.received_date, batch.batch_number)

    batches = StockBatch.objects.select_for_update().filter(
        material=material, remaining_quantity__gt=0, deleted_at__isnull=True
    )
    left = Decimal(str(quantity))
    for batch in sorted(batches, key=order):
        if left <= 0:
            break
        take = min(batch.remaining_quantity, left)
        batch.remaining_quantity -= take
        batch.save(update_fields=['remaining_quantity', 'updated_at'])
        left -= take
    return left


def usable_batch_quantity(material, today=None):
    """Stock left in QC-passed batches that have not expired."""
    today = today or timezone.localdate()
    total = StockBatch.objects.filter(
        material=material,
        remaining_quantity__gt=0,
        qc_status='passed',
        deleted_at__isnull=True,
    ).filter(
        Q(expiry_date__isnull=True) | Q(expiry_date__gte=today)
    ).aggregate(total=Sum('remaining_quantity'))['total']
    return total or Decimal('0')


def issuable_stock(material):
    """
    Quantity an issue can take now.

    Batch-tracked materials are limited to what their usable batches hold.
    """
    if not material.is_batch_tracked:
        return material.current_stock
    return min(material.current_stock, usable_batch_quantity(material))


def issue_from_stock(material, quantity, user=None, reference='', project=''):
    """
    Take `quantity` out of a locked material.

    Batch-tracked materials are consumed FIFO; one movement is written per
    batch touched. Returns a list of (batch, quantity) pairs; batch is None
    for untracked materials.
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationException("Issue quantity must be greater than zero",
                                  field='quantity', value=quantity)
    if quantity > material.current_stock:
        raise InsufficientStockException(material.code, str(quantity), str(material.current_stock))

    if not material.is_batch_tracked:
        record_movement(material, 'issue', -quantity, user=user, reference=reference, project=project)
        return [(None, quantity)]

    batches = {
        b.pk: b for b in StockBatch.objects.select_for_update().filter(
            material=material, remaining_quantity__gt=0, deleted_at__isnull=True
        )
    }
    slots = [
        rules.BatchSlot(
            batch_id=b.pk,
            batch_number=b.batch_number,
            remaining=b.remaining_quantity,
            received_date=b.received_date,
            expiry_date=b.expiry_date,
            qc_status=b.qc_status,
        )
        for b in batches.values()
    ]
    allocations = rules.allocate_fifo(slots, quantity, timezone.localdate(), material.code)

    taken = []
    for allocation in allocations:
        batch = batches[allocation.batch_id]
        batch.remaining_quantity -= allocation.quantity
        batch.save(update_fields=['remaining_quantity', 'updated_at'])
        record_movement(
            material, 'issue', -allocation.quantity, user=user,
            reference=reference, batch=batch, project=project,
        )
        taken.append((batch, allocation.quantity))
    return taken


def receive_into_stock(material, quantity, unit_price=None, user=None, reference='',
                       batch_number='', expiry_date=None, goods_receipt=None):
    """
    Add accepted quantity to a locked material.

    Updates last and running average price. Batch-tracked materials get
    a StockBatch (a batch number is generated from the reference when
    none was given).
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        return None

    if unit_price is not None:
        material.average_price = running_average_price(
            material.current_stock, material.average_price, quantity, unit_price
        )
        material.last_price = unit_price
        material.save(update_fields=['average_price', 'last_price', 'updated_at'])

    batch = None
    if material.is_batch_tracked:
        batch_number = batch_number or f"{reference}-{material.code}"
        batch, created = StockBatch.objects.get_or_create(
            material=material,
            batch_number=batch_number,
            defaults={
                'received_quantity': quantity,
                'remaining_quantity': quantity,
                'expiry_date': expiry_date,
                'goods_receipt': goods_receipt,
                'unit_cost': unit_price,
                'created_by': user,
            },
        )
        if not created:
            batch.received_quantity += quantity
            batch.remaining_quantity += quantity
            batch.save(update_fields=['received_quantity', 'remaining_quantity', 'updated_at'])

    return record_movement(material, 'inward', quantity, user=user, reference=reference, batch=batch)


# =============================================================================
# RETURNS & RESERVATIONS
# =============================================================================

@transaction.atomic
def return_to_stock(material_id, quantity, job_number, condition='good', batch_number='',
                    remarks='', user=None):
    """
    Record unused material coming back from a job.

    Good material is restocked, into the named batch when it exists. Damaged
    or partial returns are logged with a zero `return` movement so the ledger
    still shows them. Returns the MaterialReturn.
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationException("Return quantity must be greater than zero",
                                  field='quantity', value=quantity)
    if not job_number:
        raise ValidationException("Job number is required", field='job_number')
    if condition not in dict(MaterialReturn.CONDITION_CHOICES):
        raise ValidationException("Unknown return condition", field='condition', value=condition)

    material = lock_material(material_id)
    restock = condition == 'good'
    batch = None
    if material.is_batch_tracked and batch_number:
        batch = StockBatch.objects.select_for_update().filter(
            material=material, batch_number=batch_number, deleted_at__isnull=True
        ).first()

    material_return = MaterialReturn.objects.create(
        material=material,
        quantity=quantity,
        job_number=job_number,
        batch=batch,
        condition=condition,
        restocked_quantity=quantity if restock else Decimal('0'),
        remarks=remarks or '',
        returned_by=user,
        created_by=user,
    )

    if restock and material.is_batch_tracked:
        if batch is None:
            batch = StockBatch.objects.create(
                material=material,
                batch_number=batch_number or material_return.number,
                received_quantity=quantity,
                remaining_quantity=quantity,
                created_by=user,
            )
            material_return.batch = batch
            material_return.save(update_fields=['batch', 'updated_at'])
        else:
            batch.remaining_quantity += quantity
            batch.save(update_fields=['remaining_quantity', 'updated_at'])

    record_movement(
        material, 'return', quantity if restock else Decimal('0'), user=user,
        reference=material_return.number, batch=batch, project=job_number,
        notes='' if restock else f"Returned {condition}, not restocked",
    )
    if restock:
        evaluate_stock_alert(material)

    log_action('return', material_return, user=user, details={
        'material': material.code,
        'quantity': str(quantity),
        'condition': condition,
        'job': job_number,
    })
    notifications.dashboard_changed('inventory')
    logger.info(f"Return {material_return.number}: {material.code} x {quantity} ({condition})")
    return material_return


def reserved_quantity(material):
    total = MaterialReservation.objects.filter(
        material=material, status='active', deleted_at__isnull=True
    ).aggregate(total=Sum('quantity'))['total']
    return total or Decimal('0')


def reservable_stock(material):
    """Issuable stock not already blocked by active reservations."""
    return max(issuable_stock(material) - reserved_quantity(material), Decimal('0'))


@transaction.atomic
def reserve_material(material_id, quantity, job_number, production_order='', user=None):
    """Block stock for a job. Fails when unreserved stock cannot cover it."""
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationException("Reserved quantity must be greater than zero",
                                  field='quantity', value=quantity)
    if not job_number:
        raise ValidationException("Job number is required", field='job_number')

    material = lock_material(material_id)
    available = reservable_stock(material)
    if quantity > available:
        raise InsufficientStockException(material.code, str(quantity), str(available))

    reservation = MaterialReservation.objects.create(
        material=material,
        quantity=quantity,
        job_number=job_number,
        production_order=production_order or '',
        reserved_by=user,
        created_by=user,
    )
    log_action('reserve', reservation, user=user, details={
        'material': material.code,
        'quantity': str(quantity),
        'job': job_number,
    })
    return reservation


def cancel_reservation(reservation, user=None):
    reservation.transition_to('cancelled', updated_by=user)
    log_action('cancel', reservation, user=user)
    return reservation


@transaction.atomic
def fulfil_reservation(reservation_id, user=None):
    """Issue the reserved quantity to the job. Returns the MaterialIssue."""
    reservation = MaterialReservation.objects.select_for_update().get(pk=reservation_id)
    if reservation.status != 'active':
        raise BusinessRuleViolationException(
            'rsv_active', f"Reservation {reservation.number} is {reservation.status}"
        )

    material = lock_material(reservation.material_id)
    material_issue = MaterialIssue.objects.create(
        issued_to=reservation.reserved_by,
        issued_by=user,
        project=reservation.job_number,
        created_by=user,
    )
    taken = issue_from_stock(
        material, reservation.quantity, user=user,
        reference=material_issue.number, project=reservation.job_number,
    )
    for batch, batch_quantity in taken:
        MaterialIssueItem.objects.create(
            issue=material_issue,
            material=material,
            quantity=batch_quantity,
            batch=batch,
        )
    reservation.transition_to('fulfilled', issue=material_issue, updated_by=user)
    evaluate_stock_alert(material)

    log_action('issue', reservation, user=user, details={'issue': material_issue.number})
    notifications.dashboard_changed('inventory')
    return material_issue


# =============================================================================
# ALERTS
# =============================================================================

def evaluate_stock_alert(material, user=None, purchase_order=None):
    """
    Raise, update or resolve the material's alert for its current stock.

    An open alert is resolved once stock is back above the minimum.
    Returns the open alert, or None when there is none.
    """
    level = rules.alert_level(material.current_stock, material.min_stock)
    alert = StockAlert.objects.filter(
        material=material, status__in=StockAlert.OPEN_STATUSES
    ).first()

    if level is None:
        if alert is not None and material.current_stock > material.min_stock:
            alert.resolve(user=user, purchase_order=purchase_order)
            logger.info(f"Stock alert for {material.code} resolved, stock {material.current_stock}")
            return None
        return alert

    suggested = rules.suggested_reorder_quantity(material.current_stock, material.min_stock)
    if alert is None:
        alert = StockAlert.objects.create(
            material=material,
            level=level.value,
            current_stock=material.current_stock,
            min_stock=material.min_stock,
            suggested_reorder_quantity=suggested,
        )
        notifications.notify(
            title=f"Stock alert: {material.code} {level.value.replace('_', ' ')}",
            message=f"{material.name}: {material.current_stock} {material.unit} in stock, "
                    f"minimum {material.min_stock}. Suggested reorder {suggested}.",
            roles=['store', 'purchase'],
            notification_type='stock_alert',
            priority='urgent' if level in (AlertLevel.OUT_OF_STOCK, AlertLevel.CRITICAL) else 'high',
        )
        logger.warning(f"Stock alert {level.value} raised for {material.code}")
        return alert

    alert.level = level.value
    alert.current_stock = material.current_stock
    alert.min_stock = material.min_stock
    alert.suggested_reorder_quantity = suggested
    alert.save(update_fields=['level', 'current_stock', 'min_stock',
                              'suggested_reorder_quantity', 'updated_at'])
    return alert


def scan_stock_alerts():
    """Evaluate every active material. Returns counts for the task result."""
    raised = resolved = 0
    open_before = set(
        StockAlert.objects.filter(status__in=StockAlert.OPEN_STATUSES).values_list('material_id', flat=True)
    )
    for material in Material.objects.filter(is_active=True).iterator():
        with transaction.atomic():
            alert = evaluate_stock_alert(material)
        if alert is not None and material.pk not in open_before:
            raised += 1
        elif alert is None and material.pk in open_before:
            resolved += 1
    return {'raised': raised, 'resolved': resolved}


def reactivate_snoozed_alerts(now=None):
    now = now or timezone.now()
    return StockAlert.objects.filter(status='snoozed', snoozed_until__lte=now).update(
        status='active', snoozed_until=None, updated_at=now
    )


# =============================================================================
# REPLENISHMENT & BATCHES
# =============================================================================

def reorder_suggestions(lead_time_days=None, limit=rules.MAX_REORDER_SUGGESTIONS):
    """Materials that need ordering, most urgent first."""
    lead_time_days = lead_time_days or settings.REORDER_LEAD_TIME_DAYS
    since = timezone.now() - timedelta(days=rules.CONSUMPTION_WINDOW_DAYS)

    materials = list(Material.objects.filter(is_active=True))
    issued = dict(
        StockMovement.objects.filter(
            movement_type='issue', performed_at__gte=since,
            material__in=[m.pk for m in materials],
        ).values('material').annotate(total=Sum('quantity')).values_list('material', 'total')
    )

    candidates = [
        rules.ReorderCandidate(
            material_id=m.pk,
            material_code=m.code,
            material_name=m.name,
            current_stock=m.current_stock,
            min_stock=m.min_stock,
            issued_last_window=abs(issued.get(m.pk) or Decimal('0')),
            unit_price=m.last_price or Decimal('0'),
        )
        for m in materials
        if rules.needs_reorder(m.current_stock, m.min_stock)
    ]
    return rules.suggest_reorders(candidates, limit=limit, lead_time_days=lead_time_days)


def expiring_batches(days=rules.EXPIRY_WARNING_DAYS):
    """Batches with stock left that expire within `days` or already expired."""
    today = timezone.localdate()
    return StockBatch.objects.filter(
        remaining_quantity__gt=0,
        expiry_date__isnull=False,
        expiry_date__lte=today + timedelta(days=days),
        deleted_at__isnull=True,
    ).select_related('material').order_by('expiry_date')


def export_stock_report(user=None):
    """
    Stock report as an xlsx workbook.

    Returns (filename, bytes).
    """
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

    wb = Workbook()
    ws = wb.active
    ws.title = "Stock"

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin'),
    )
    low_fill = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")

    headers = ['Code', 'Name', 'Unit', 'Stock', 'Min', 'Value', 'Status']
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center')
        cell.border = thin_border

    row = 2
    for material in Material.objects.filter(is_active=True).order_by('code'):
        values = [
            material.code,
            material.name,
            material.unit,
            float(material.current_stock),
            float(material.min_stock),
            float(material.stock_value),
            material.stock_status,
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = thin_border
            if material.stock_status != 'ok':
                cell.fill = low_fill
        row += 1

    widths = [14, 40, 8, 12, 12, 14, 14]
    for col, width in enumerate(widths, 1):
        ws.column_dimensions[chr(64 + col)].width = width

    buffer = io.BytesIO()
    wb.save(buffer)

    filename = f"stock_report_{timezone.localdate():%Y%m%d}.xlsx"
    log_action('export', user=user, document_type='stock_report', details={'rows': row - 2})
    return filename, buffer.getvalue()
