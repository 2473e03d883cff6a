import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import IntegrityError
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from domain.shared.exceptions import (
    AuthorizationException,
    BusinessRuleViolationException,
    DomainException,
    EntityNotFoundException,
    InsufficientStockException,
    StatusTransitionException,
    ValidationException,
)

logger = logging.getLogger(__name__)

DOMAIN_STATUS = [
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND),
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (AuthorizationException, status.HTTP_403_FORBIDDEN),
    (StatusTransitionException, status.HTTP_409_CONFLICT),
    (BusinessRuleViolationException, status.HTTP_409_CONFLICT),
    (InsufficientStockException, status.HTTP_409_CONFLICT),
]


def domain_status(exc):
    for exc_class, code in DOMAIN_STATUS:
        if isinstance(exc, exc_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def custom_exception_handler(exc, context):
    """
    Translate domain and database errors into JSON responses.

    Everything else goes to the default DRF handler.
    """
    if isinstance(exc, DomainException):
        code = domain_status(exc)
        logger.info(f"{exc.code} in {context.get('view').__class__.__name__}: {exc.message}")
        return Response(
            {'detail': exc.message, 'error': exc.code.lower(), 'details': exc.details},
            status=code,
        )

    if isinstance(exc, ProtectedError):
        protected = [str(o) for o in list(exc.protected_objects)[:5]]
        return Response(
            {
                'detail': 'Cannot delete: the object is referenced by other documents.',
                'error': 'protected_error',
                'details': {'protected_objects_sample': protected},
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error: {exc}")
        return Response(
            {
                'detail': 'Data integrity violation (duplicate or related records).',
                'error': 'integrity_error',
                'details': {},
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, ObjectDoesNotExist):
        return Response(
            {'detail': str(exc) or 'Not found.', 'error': 'not_found', 'details': {}},
            status=status.HTTP_404_NOT_FOUND,
        )

    return exception_handler(exc, context)
