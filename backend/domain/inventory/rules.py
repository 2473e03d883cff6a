"""
Inventory Domain - Rules.

Stock alert levels, reorder suggestions, FIFO batch allocation,
expiry tracking and requisition availability.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_CEILING
from typing import Iterable, List, Optional

from domain.shared.exceptions import InsufficientStockException, ValidationException
from domain.shared.value_objects import AlertLevel, ExpiryStatus, Priority, StockStatus


ZERO = Decimal("0")

REORDER_TRIGGER_RATIO = Decimal("1.2")
CONSUMPTION_WINDOW_DAYS = 30
DEFAULT_LEAD_TIME_DAYS = 7
MAX_REORDER_SUGGESTIONS = 20
EXPIRY_WARNING_DAYS = 30


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# STOCK LEVELS & ALERTS
# =============================================================================

def stock_status(current, minimum) -> StockStatus:
    current, minimum = _dec(current), _dec(minimum)
    if current <= 0:
        return StockStatus.OUT_OF_STOCK
    if current <= minimum:
        return StockStatus.LOW
    return StockStatus.OK


def alert_level(current, minimum) -> Optional[AlertLevel]:
    """
    Alert level for a stock position.

    Empty stock is always out_of_stock. The graded levels need a minimum:
    critical at 10%, warning at 25%, info at 50% of it.
    """
    current, minimum = _dec(current), _dec(minimum)
    if current <= 0:
        return AlertLevel.OUT_OF_STOCK
    if minimum <= 0:
        return None
    if current <= minimum * Decimal("0.10"):
        return AlertLevel.CRITICAL
    if current <= minimum * Decimal("0.25"):
        return AlertLevel.WARNING
    if current <= minimum * Decimal("0.50"):
        return AlertLevel.INFO
    return None


def suggested_reorder_quantity(current, minimum) -> Decimal:
    """Bring stock up to twice the minimum, ordering at least the minimum."""
    current, minimum = _dec(current), _dec(minimum)
    return max(minimum * 2 - current, minimum)


# =============================================================================
# REORDER SUGGESTIONS
# =============================================================================

@dataclass(frozen=True)
class ReorderCandidate:
    material_id: object
    material_code: str
    material_name: str
    current_stock: Decimal
    min_stock: Decimal
    issued_last_window: Decimal = ZERO
    unit_price: Decimal = ZERO


@dataclass(frozen=True)
class ReorderSuggestion:
    material_id: object
    material_code: str
    material_name: str
    current_stock: Decimal
    min_stock: Decimal
    avg_daily_consumption: Decimal
    lead_time_days: int
    suggested_quantity: Decimal
    priority: Priority
    estimated_cost: Decimal


def needs_reorder(current, minimum) -> bool:
    return _dec(current) <= _dec(minimum) * REORDER_TRIGGER_RATIO


def reorder_priority(current, minimum) -> Priority:
    current, minimum = _dec(current), _dec(minimum)
    if current == 0:
        return Priority.URGENT
    if current < minimum:
        return Priority.HIGH
    return Priority.NORMAL


def suggest_reorder(candidate: ReorderCandidate,
                    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS) -> Optional[ReorderSuggestion]:
    if not needs_reorder(candidate.current_stock, candidate.min_stock):
        return None
    avg = _dec(candidate.issued_last_window) / CONSUMPTION_WINDOW_DAYS
    raw = avg * lead_time_days + _dec(candidate.min_stock) - _dec(candidate.current_stock)
    quantity = raw.to_integral_value(rounding=ROUND_CEILING)
    if quantity <= 0:
        return None
    return ReorderSuggestion(
        material_id=candidate.material_id,
        material_code=candidate.material_code,
        material_name=candidate.material_name,
        current_stock=_dec(candidate.current_stock),
        min_stock=_dec(candidate.min_stock),
        avg_daily_consumption=avg.quantize(Decimal("0.001")),
        lead_time_days=lead_time_days,
        suggested_quantity=quantity,
        priority=reorder_priority(candidate.current_stock, candidate.min_stock),
        estimated_cost=quantity * _dec(candidate.unit_price),
    )


def suggest_reorders(candidates: Iterable[ReorderCandidate],
                     limit: int = MAX_REORDER_SUGGESTIONS,
                     lead_time_days: int = DEFAULT_LEAD_TIME_DAYS) -> List[ReorderSuggestion]:
    """Suggestions for every candidate that needs one, most urgent first."""
    suggestions = [s for s in (suggest_reorder(c, lead_time_days) for c in candidates) if s is not None]
    suggestions.sort(key=lambda s: (s.priority.rank, s.current_stock - s.min_stock))
    return suggestions[:limit]


# =============================================================================
# BATCHES
# =============================================================================

def expiry_status(expiry_date: Optional[date], today: date) -> ExpiryStatus:
    if not expiry_date:
        return ExpiryStatus.OK
    days_left = (expiry_date - today).days
    if days_left < 0:
        return ExpiryStatus.EXPIRED
    if days_left <= EXPIRY_WARNING_DAYS:
        return ExpiryStatus.EXPIRING_SOON
    return ExpiryStatus.OK


@dataclass(frozen=True)
class BatchSlot:
    batch_id: object
    batch_number: str
    remaining: Decimal
    received_date: date
    expiry_date: Optional[date] = None
    qc_status: str = "passed"


@dataclass(frozen=True)
class BatchAllocation:
    batch_id: object
    batch_number: str
    quantity: Decimal


def allocate_fifo(batches: Iterable[BatchSlot], quantity, today: date,
                  material: str = "") -> List[BatchAllocation]:
    """
    Take `quantity` from the oldest usable batches first.

    Usable means QC passed, not expired and with stock remaining.
    """
    quantity = _dec(quantity)
    if quantity <= 0:
        raise ValidationException("Issue quantity must be greater than zero",
                                  field="quantity", value=quantity)
    usable = sorted(
        (b for b in batches
         if b.qc_status == "passed"
         and _dec(b.remaining) > 0
         and expiry_status(b.expiry_date, today) != ExpiryStatus.EXPIRED),
        key=lambda b: (b.received_date, b.batch_number),
    )
    available = sum((_dec(b.remaining) for b in usable), ZERO)
    if available < quantity:
        raise InsufficientStockException(material, str(quantity), str(available))

    allocations = []
    left = quantity
    for batch in usable:
        if left <= 0:
            break
        take = min(_dec(batch.remaining), left)
        allocations.append(BatchAllocation(batch.batch_id, batch.batch_number, take))
        left -= take
    return allocations


# =============================================================================
# REQUISITION AVAILABILITY
# =============================================================================

def requisition_availability(lines: Iterable[tuple]) -> str:
    """
    Overall availability of a requisition from (requested, in_stock) pairs.

    Returns stock_available, stock_partial or stock_unavailable.
    """
    lines = list(lines)
    if not lines:
        raise ValidationException("Requisition has no items")
    full = sum(1 for requested, stock in lines if _dec(stock) >= _dec(requested))
    some = sum(1 for requested, stock in lines if _dec(stock) > 0)
    if full == len(lines):
        return "stock_available"
    if some:
        return "stock_partial"
    return "stock_unavailable"


def issuable_quantity(requested, in_stock) -> Decimal:
    return max(ZERO, min(_dec(requested), _dec(in_stock)))
