"""
Domain Exceptions.

Custom exceptions for domain-level errors.
These exceptions represent business rule violations and are translated
into HTTP responses by the API exception handler.
"""

from typing import Optional, Any, Dict


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DOMAIN_ERROR"
        self.details = details or {}


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            message=f"{entity_type} with id '{entity_id}' not found",
            code="ENTITY_NOT_FOUND",
            details={"entity_type": entity_type, "entity_id": str(entity_id)}
        )


class ValidationException(DomainException):
    """Raised when validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, "value": str(value) if value is not None else None}
        )


class InsufficientStockException(DomainException):
    """Raised when there is not enough stock for an operation."""

    def __init__(
        self,
        item_id: Any,
        requested_quantity: str,
        available_quantity: str
    ):
        super().__init__(
            message=f"Insufficient stock for '{item_id}'. "
                    f"Requested: {requested_quantity}, Available: {available_quantity}",
            code="INSUFFICIENT_STOCK",
            details={
                "item_id": str(item_id),
                "requested_quantity": str(requested_quantity),
                "available_quantity": str(available_quantity)
            }
        )


class StatusTransitionException(DomainException):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        current_status: str,
        target_status: str,
        allowed_transitions: Optional[list] = None
    ):
        super().__init__(
            message=f"Cannot transition {entity_type} from '{current_status}' to '{target_status}'",
            code="INVALID_STATUS_TRANSITION",
            details={
                "entity_type": entity_type,
                "current_status": current_status,
                "target_status": target_status,
                "allowed_transitions": allowed_transitions or []
            }
        )


class AuthorizationException(DomainException):
    """Raised when user is not authorized to perform an operation."""

    def __init__(self, operation: str, resource: Optional[str] = None):
        super().__init__(
            message=f"Not authorized to perform '{operation}'" +
                    (f" on '{resource}'" if resource else ""),
            code="AUTHORIZATION_ERROR",
            details={"operation": operation, "resource": resource}
        )


class BusinessRuleViolationException(DomainException):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str):
        super().__init__(
            message=message,
            code="BUSINESS_RULE_VIOLATION",
            details={"rule": rule}
        )


def check_transition(entity_type: str, transitions: Dict[str, list], current: str, target: str) -> None:
    """
    Validate a status change against a transition table.

    Raises StatusTransitionException when `target` is not reachable from `current`.
    """
    allowed = transitions.get(current, [])
    if target not in allowed:
        raise StatusTransitionException(entity_type, current, target, allowed)
