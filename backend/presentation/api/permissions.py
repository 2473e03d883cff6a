"""
API Permissions.

ERP permission codes ('purchase:write', 'inventory:read', ...) checked
per viewset action.
"""

from rest_framework.permissions import SAFE_METHODS, BasePermission


def holds_any(user, permissions):
    """True when the user holds the code, or any code of a tuple/list."""
    if isinstance(permissions, str):
        permissions = (permissions,)
    return any(user.has_erp_permission(p) for p in permissions)


class HasERPPermission(BasePermission):
    """
    Require ERP permission codes.

    Views declare `required_permissions`, a dict keyed by action name with
    'read' and 'write' fallbacks. A tuple means any of the codes:

        required_permissions = {
            'read': 'purchase:read',
            'write': 'purchase:write',
            'approve': 'purchase:approve',
            'resolve': ('purchase:write', 'inventory:write'),
        }
    """

    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, 'required_permissions', None) or {}
        action = getattr(view, 'action', None)
        permission = required.get(action)
        if permission is None:
            permission = required.get('read' if request.method in SAFE_METHODS else 'write')
        if permission is None:
            return True
        return holds_any(user, permission)
