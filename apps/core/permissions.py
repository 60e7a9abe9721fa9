"""
DRF permission classes and decorators for token ability enforcement.

This module provides:
- HasAbilities: DRF permission class that checks the token's ability snapshot
- IsEmailVerified: DRF permission class that requires a verified email
- @requires_abilities: Decorator to declare required abilities on views
"""
import logging
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)

ADMIN_ABILITY = 'admin-access'


def token_abilities(request):
    """Return the ability set carried by the request's access token."""
    token = getattr(request, 'auth', None)
    return set(getattr(token, 'abilities', None) or [])


class HasAbilities(BasePermission):
    """
    Enforce the abilities declared on a view against the presented token.

    Abilities are read from the token snapshot taken at mint time, so the
    check never queries the RBAC tables.

    Usage in views:
        class RoleListView(APIView):
            permission_classes = [IsAuthenticated, HasAbilities]
            required_abilities = ['admin-access']

    Or use with decorator:
        @requires_abilities('admin-access')
        class RoleListView(APIView):
            ...
    """

    message = 'Unauthorized'

    def has_permission(self, request, view):
        required = getattr(view, 'required_abilities', None)
        if not required:
            return True

        if isinstance(required, str):
            required = {required}
        else:
            required = set(required)

        token = getattr(request, 'auth', None)
        missing = {ability for ability in required if token is None or not token.can(ability)}
        if missing:
            from apps.core.logging import SecurityLogger

            user = getattr(request, 'user', None)
            SecurityLogger.log_permission_denied(
                user if getattr(user, 'is_authenticated', False) else None,
                missing,
                ip_address=request.META.get('REMOTE_ADDR'),
                path=request.path,
            )
            logger.warning(
                f"Permission denied: missing abilities {sorted(missing)}",
                extra={
                    'required_abilities': sorted(required),
                    'missing_abilities': sorted(missing),
                    'view': view.__class__.__name__,
                    'method': request.method,
                    'path': request.path,
                    'request_id': getattr(request, 'request_id', None),
                }
            )
            return False

        return True


class IsEmailVerified(BasePermission):
    """Allow access only to users whose email address has been verified."""

    message = 'Email not verified'

    def has_permission(self, request, view):
        user = getattr(request, 'user', None)
        return bool(
            user
            and getattr(user, 'is_authenticated', False)
            and getattr(user, 'email_verified_at', None) is not None
        )


def is_self_or_admin(request, user_id):
    """True when the caller acts on their own account or holds admin-access."""
    return request.user.id == int(user_id) or ADMIN_ABILITY in token_abilities(request)


def requires_abilities(*abilities):
    """
    Class decorator to declare required abilities on a view.

    Sets the ``required_abilities`` attribute checked by HasAbilities and
    adds HasAbilities to the view's permission classes if missing.

    Args:
        *abilities: Ability strings required for access
    """
    def decorator(view_class):
        view_class.required_abilities = set(abilities)
        permission_classes = list(getattr(view_class, 'permission_classes', []))
        if HasAbilities not in permission_classes:
            view_class.permission_classes = permission_classes + [HasAbilities]
        return view_class

    return decorator
