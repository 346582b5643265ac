"""
Role-based permissions for the workflow API.

There are no user accounts: the operator picks a role on the role selection
screen and it is kept in the session's navigation state. These DRF
permission classes read it from there.

Roles:
- inspector: uploads field reports, edits and submits drafts
- supervisor: reviews drafts, approves or sends them back

Usage:
    from apps.core.permissions import HasOperatorRole

    class MyView(APIView):
        permission_classes = [HasOperatorRole]

Command-level gates (which role may act on which item in which state) live in
apps.workitems.navigation and raise PreconditionFailedError; these classes
only guard whole endpoints.
"""

from rest_framework.permissions import BasePermission
import logging

logger = logging.getLogger(__name__)


def get_operator_role(request):
    """Role selected in this session, or None before role selection."""
    session = getattr(request, 'session', None)
    if session is None:
        return None
    return (session.get('navigation') or {}).get('role')


class RolePermission(BasePermission):
    """Base class for role-based permissions."""

    # Override in subclasses
    allowed_roles = []

    def has_permission(self, request, view):
        role = get_operator_role(request)
        if role is None:
            return False
        return role in self.allowed_roles


class HasOperatorRole(RolePermission):
    """Any role has been selected."""
    allowed_roles = ['inspector', 'supervisor']
    message = "Select a role first."
