"""Role-based authorization for admin routes."""

from collections.abc import Iterable

from campadmin.models.admin_user import AdminRole
from campadmin.services.tokens import AdminIdentity

# Route-level role sets
SUPER_ADMIN_ONLY: frozenset[AdminRole] = frozenset({AdminRole.SUPER_ADMIN})
ADMINS: frozenset[AdminRole] = frozenset({AdminRole.SUPER_ADMIN, AdminRole.ADMIN})


def role_set(allowed_roles: Iterable[AdminRole] | AdminRole) -> frozenset[AdminRole]:
    """Normalise a role or collection of roles to a frozenset.

    A bare role is a one-element set. AdminRole is a str, so testing
    membership against it directly would be a substring match.
    """
    if isinstance(allowed_roles, str):
        return frozenset({allowed_roles})
    return frozenset(allowed_roles)


def authorize(
    identity: AdminIdentity | None,
    allowed_roles: frozenset[AdminRole] | AdminRole,
) -> bool:
    """True if ``identity`` holds one of ``allowed_roles``. Never raises."""
    if identity is None:
        return False
    return identity.role in role_set(allowed_roles)
