"""
Shared Value Objects used across multiple domains.

Value Objects are immutable objects that describe characteristics of a thing.
Two value objects are equal if all their properties are equal.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
import re


TWO_PLACES = Decimal("0.01")


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    """Application roles. Each role maps to a department dashboard."""

    MD = "md"                    # Managing Director
    ADMIN = "admin"
    HR = "hr"
    PM = "pm"                    # Project Manager
    SUPERVISOR = "supervisor"    # Production floor
    STORE = "store"
    PURCHASE = "purchase"
    DESIGN = "design"
    QUALITY = "quality"
    DISPATCH = "dispatch"
    VIEWER = "viewer"

    @property
    def display_name(self) -> str:
        return ROLE_NAMES[self]

    @property
    def default_permissions(self) -> list[str]:
        return list(ROLE_PERMISSIONS[self])

    @property
    def dashboard(self) -> str:
        return ROLE_DASHBOARDS.get(self, "summary")

    @classmethod
    def choices(cls) -> list[tuple[str, str]]:
        return [(r.value, r.display_name) for r in cls]


ALL_PERMISSIONS = "*"

ROLE_NAMES = {
    UserRole.MD: "Managing Director",
    UserRole.ADMIN: "Administrator",
    UserRole.HR: "HR Manager",
    UserRole.PM: "Project Manager",
    UserRole.SUPERVISOR: "Supervisor",
    UserRole.STORE: "Store Manager",
    UserRole.PURCHASE: "Purchase Officer",
    UserRole.DESIGN: "Design Engineer",
    UserRole.QUALITY: "Quality Controller",
    UserRole.DISPATCH: "Dispatch Coordinator",
    UserRole.VIEWER: "Viewer",
}

ROLE_PERMISSIONS = {
    UserRole.MD: [ALL_PERMISSIONS],
    UserRole.ADMIN: [
        "users:read", "users:write", "users:delete",
        "settings:read", "settings:write", "dashboard:admin",
    ],
    UserRole.HR: ["users:read", "users:write", "reports:read"],
    UserRole.PM: ["production:read", "production:write", "reports:read", "inventory:read"],
    UserRole.SUPERVISOR: ["production:read", "production:write", "dashboard:supervisor", "inventory:read"],
    UserRole.STORE: ["inventory:read", "inventory:write", "purchase:read"],
    UserRole.PURCHASE: ["purchase:read", "purchase:write", "inventory:read", "reports:read"],
    UserRole.DESIGN: ["production:read", "production:write", "inventory:read"],
    UserRole.QUALITY: ["production:read", "quality:write", "inventory:read", "reports:read"],
    UserRole.DISPATCH: ["inventory:read", "dispatch:write", "reports:read"],
    UserRole.VIEWER: ["reports:read"],
}

ROLE_DASHBOARDS = {
    UserRole.MD: "md",
    UserRole.ADMIN: "summary",
    UserRole.PM: "production",
    UserRole.SUPERVISOR: "production",
    UserRole.STORE: "store",
    UserRole.PURCHASE: "purchase",
    UserRole.QUALITY: "quality",
    UserRole.DISPATCH: "dispatch",
}


def has_permission(permissions: list, required: str) -> bool:
    """Check a permission list, honouring the wildcard."""
    permissions = permissions or []
    return ALL_PERMISSIONS in permissions or required in permissions


class Priority(str, Enum):
    """Priority of purchase requisitions and notifications."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort rank, lower is more pressing."""
        return {
            Priority.URGENT: 0,
            Priority.HIGH: 1,
            Priority.NORMAL: 2,
            Priority.LOW: 3,
        }[self]


class Urgency(str, Enum):
    """Urgency of a material request as raised by a department."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    def to_priority(self) -> Priority:
        if self is Urgency.CRITICAL:
            return Priority.URGENT
        if self is Urgency.HIGH:
            return Priority.HIGH
        return Priority.NORMAL


class AlertLevel(str, Enum):
    """Stock alert severity, most severe first."""

    OUT_OF_STOCK = "out_of_stock"
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class QualityStatus(str, Enum):
    """Quality verdict for a received line."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


class ExpiryStatus(str, Enum):
    """Shelf-life state of a stock batch."""

    OK = "ok"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class StockStatus(str, Enum):
    """Stock level state of a material."""

    OK = "ok"
    LOW = "low"
    OUT_OF_STOCK = "out_of_stock"


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class Money:
    """
    Value object representing monetary amount.
    Immutable and includes currency.
    """

    amount: Decimal
    currency: str = "INR"

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if len(self.currency) != 3:
            raise ValueError("Currency must be a 3-letter code")

    def __add__(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: Decimal | int | float) -> Money:
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def rounded(self) -> Money:
        return Money(self.amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP), self.currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


@dataclass(frozen=True)
class DocumentNumber:
    """
    Sequential document number of the form PREFIX-YYMMDD-NNNN.

    Delivery challans use a long date and a three digit sequence
    (DC-YYYYMMDD-NNN), expressed through `long_date` and `width`.
    """

    prefix: str
    day: date
    sequence: int
    long_date: bool = False
    width: int = 4

    PATTERN = re.compile(r'^(?P<prefix>[A-Z]+)-(?P<day>\d{6}|\d{8})-(?P<seq>\d+)$')

    def __post_init__(self):
        if not self.prefix.isalpha() or not self.prefix.isupper():
            raise ValueError(f"Invalid document prefix: {self.prefix}")
        if self.sequence < 1:
            raise ValueError("Sequence must start at 1")

    @property
    def day_part(self) -> str:
        return self.day.strftime('%Y%m%d' if self.long_date else '%y%m%d')

    @property
    def stem(self) -> str:
        """Prefix and date, shared by all numbers issued on the same day."""
        return f"{self.prefix}-{self.day_part}-"

    def next(self) -> DocumentNumber:
        return DocumentNumber(self.prefix, self.day, self.sequence + 1, self.long_date, self.width)

    @classmethod
    def parse_sequence(cls, value: str) -> Optional[int]:
        match = cls.PATTERN.match(value or '')
        if not match:
            return None
        return int(match.group('seq'))

    def __str__(self) -> str:
        return f"{self.stem}{self.sequence:0{self.width}d}"
