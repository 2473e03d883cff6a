"""
Audit trail helpers.
"""

import logging

from infrastructure.persistence.models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Client IP from the request, honouring X-Forwarded-For."""
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(action, document=None, user=None, request=None, details=None,
               document_type=None):
    """
    Write one audit log entry.

    Args:
        action: One of AuditLog.ACTION_CHOICES
        document: Model instance the action applies to (optional)
        user: Acting user; defaults to request.user
        request: Django/DRF request for IP and user agent
        details: JSON-serialisable dict with whatever is worth keeping
        document_type: Override for the document type label
    """
    if user is None and request is not None:
        user = getattr(request, 'user', None)
    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None

    entry = AuditLog(
        action=action,
        user=user,
        details=details or {},
    )
    if document is not None:
        entry.document_type = document_type or document._meta.model_name
        entry.document_id = str(document.pk)
        entry.document_number = getattr(document, 'number', '') or ''
    elif document_type:
        entry.document_type = document_type
    if request is not None:
        entry.user_ip = get_client_ip(request)
        entry.user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]
    entry.save()
    logger.debug(f"Audit {action} {entry.document_type} {entry.document_number} by {user}")
    return entry
