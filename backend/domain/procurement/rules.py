"""
Procurement Domain - Rules.

Pure functions and value objects for the BOM -> PR -> PO -> GRN flow.
Nothing here touches the database; callers pass plain values in and
persist the results themselves.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from domain.shared.exceptions import ValidationException
from domain.shared.value_objects import QualityStatus, TWO_PLACES


ZERO = Decimal("0")
DEFAULT_GST_RATE = Decimal("18")
DEFAULT_MD_APPROVAL_THRESHOLD = Decimal("50000")


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return _dec(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# =============================================================================
# STOCK CHECK
# =============================================================================

@dataclass(frozen=True)
class BOMLine:
    """One requirement line of a BOM as seen by the stock check."""

    material_id: object
    material_code: str
    material_name: str
    required_quantity: Decimal
    current_stock: Decimal
    unit: str = ""
    last_price: Optional[Decimal] = None
    average_price: Optional[Decimal] = None
    supplier_id: Optional[object] = None


@dataclass(frozen=True)
class PRLine:
    """Proposed purchase requisition line for a shortfall."""

    material_id: object
    material_code: str
    material_name: str
    quantity: Decimal
    unit: str
    estimated_unit_price: Decimal
    estimated_total: Decimal
    suggested_supplier_id: Optional[object] = None


@dataclass(frozen=True)
class StockCheckLine:
    line: BOMLine
    available_quantity: Decimal
    shortfall: Decimal

    @property
    def is_available(self) -> bool:
        return self.shortfall <= 0


@dataclass
class StockCheckResult:
    lines: List[StockCheckLine] = field(default_factory=list)

    @property
    def items_available(self) -> int:
        return sum(1 for ln in self.lines if ln.is_available)

    @property
    def items_short(self) -> int:
        return sum(1 for ln in self.lines if not ln.is_available)

    @property
    def has_shortfall(self) -> bool:
        return self.items_short > 0

    def pr_lines(self) -> List[PRLine]:
        return [build_pr_line(ln.line, ln.shortfall) for ln in self.lines if not ln.is_available]


def compute_shortfall(required, available) -> Decimal:
    """Shortfall is what is required beyond current stock, never negative."""
    return max(ZERO, _dec(required) - _dec(available))


def estimate_unit_price(last_price=None, average_price=None) -> Decimal:
    """Last purchase price, else running average, else zero."""
    if last_price:
        return _dec(last_price)
    if average_price:
        return _dec(average_price)
    return ZERO


def build_pr_line(line: BOMLine, quantity) -> PRLine:
    quantity = _dec(quantity)
    unit_price = estimate_unit_price(line.last_price, line.average_price)
    return PRLine(
        material_id=line.material_id,
        material_code=line.material_code,
        material_name=line.material_name,
        quantity=quantity,
        unit=line.unit,
        estimated_unit_price=unit_price,
        estimated_total=money(quantity * unit_price),
        suggested_supplier_id=line.supplier_id,
    )


def check_stock(lines: Iterable[BOMLine]) -> StockCheckResult:
    """
    Check every BOM line against current stock.

    Available quantity is capped at the requirement so that a line never
    reports more stock than it asks for.
    """
    result = StockCheckResult()
    for line in lines:
        required = _dec(line.required_quantity)
        if required <= 0:
            raise ValidationException(
                f"Required quantity for {line.material_code} must be positive",
                field="required_quantity",
                value=required,
            )
        stock = max(ZERO, _dec(line.current_stock))
        result.lines.append(StockCheckLine(
            line=line,
            available_quantity=min(stock, required),
            shortfall=compute_shortfall(required, stock),
        ))
    return result


# =============================================================================
# PURCHASE ORDER
# =============================================================================

@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    gst_amount: Decimal
    total: Decimal


def line_total(quantity, unit_price) -> Decimal:
    return money(_dec(quantity) * _dec(unit_price))


def order_totals(lines: Iterable[Tuple[object, object]], gst_rate=DEFAULT_GST_RATE) -> OrderTotals:
    """
    Subtotal of (quantity, unit_price) pairs, GST on the subtotal, and total.
    """
    subtotal = money(sum((_dec(q) * _dec(p) for q, p in lines), ZERO))
    gst_amount = money(subtotal * _dec(gst_rate) / Decimal("100"))
    return OrderTotals(subtotal=subtotal, gst_amount=gst_amount, total=subtotal + gst_amount)


def requires_md_approval(total, threshold=DEFAULT_MD_APPROVAL_THRESHOLD) -> bool:
    """Orders at or above the threshold wait for the Managing Director."""
    return _dec(total) >= _dec(threshold)


# =============================================================================
# GOODS RECEIPT
# =============================================================================

def outstanding_quantity(ordered, received) -> Decimal:
    return max(ZERO, _dec(ordered) - _dec(received))


def validate_receipt_quantity(ordered, already_received, receiving) -> Decimal:
    receiving = _dec(receiving)
    if receiving <= 0:
        raise ValidationException("Received quantity must be greater than zero",
                                  field="received_quantity", value=receiving)
    pending = outstanding_quantity(ordered, already_received)
    if receiving > pending:
        raise ValidationException(
            f"Received quantity {receiving} exceeds outstanding quantity {pending}",
            field="received_quantity",
            value=receiving,
        )
    return receiving


def receipt_status(lines: Iterable[Tuple[object, object]]) -> Optional[str]:
    """
    Purchase order status after receiving (ordered, received) per line.

    Returns None when nothing has been received yet.
    """
    lines = list(lines)
    if not any(_dec(received) > 0 for _, received in lines):
        return None
    if all(_dec(received) >= _dec(ordered) for ordered, received in lines):
        return "received"
    return "partially_received"


def quality_status(received, accepted, rejected) -> QualityStatus:
    received, accepted, rejected = _dec(received), _dec(accepted), _dec(rejected)
    if accepted < 0 or rejected < 0:
        raise ValidationException("Accepted and rejected quantities cannot be negative")
    if accepted + rejected != received:
        raise ValidationException(
            f"Accepted ({accepted}) and rejected ({rejected}) must add up to received ({received})",
            field="accepted_quantity",
            value=accepted,
        )
    if rejected == 0:
        return QualityStatus.PASSED
    if accepted == 0:
        return QualityStatus.FAILED
    return QualityStatus.PARTIAL


def running_average_price(old_quantity, old_average, new_quantity, new_price) -> Decimal:
    """Weighted average price after receiving new stock."""
    old_quantity = max(ZERO, _dec(old_quantity))
    new_quantity = _dec(new_quantity)
    total_quantity = old_quantity + new_quantity
    if total_quantity <= 0:
        return money(new_price)
    value = old_quantity * _dec(old_average) + new_quantity * _dec(new_price)
    return money(value / total_quantity)
