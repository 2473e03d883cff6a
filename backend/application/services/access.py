"""
Permission checks for service calls.
"""

from domain.shared.exceptions import AuthorizationException


def require_permission(user, permission, resource=None):
    """Raise AuthorizationException unless the user holds `permission`."""
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthorizationException(permission, resource)
    if not user.has_erp_permission(permission):
        raise AuthorizationException(permission, resource)
    return user
