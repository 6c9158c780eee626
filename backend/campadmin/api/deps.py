"""Shared FastAPI dependencies for authentication and authorization.

The security components are built once by the application factory and
kept on ``app.state``; these helpers hand them to routes and translate
gate results into HTTP errors.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable

from fastapi import Depends, HTTPException, Request, status

from campadmin.models.admin_user import AdminRole
from campadmin.services.auth import AuthGate, AuthResult
from campadmin.services.roles import authorize, role_set
from campadmin.services.tokens import AdminIdentity, TokenCodec

logger = logging.getLogger(__name__)


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.auth_gate.codec


def raise_for_failure(request: Request, result: AuthResult) -> None:
    """Raise the HTTP error mapped to a failed gate result."""
    if result.ok:
        return
    logger.debug(f"Authentication failed ({result.reason}): {request.method} {request.url.path}")
    headers = {"WWW-Authenticate": "Bearer"} if result.status_code == 401 else None
    raise HTTPException(status_code=result.status_code, detail=result.message, headers=headers)


async def get_authenticated(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> AuthResult:
    """Run the authentication gate, raising the mapped HTTP error on failure."""
    result = await gate.authenticate(request.headers.get("Authorization"))
    raise_for_failure(request, result)
    return result


async def get_current_admin(
    result: AuthResult = Depends(get_authenticated),
) -> AdminIdentity:
    """Dependency to get the authenticated admin identity."""
    return result.identity


def require_roles(
    allowed_roles: Iterable[AdminRole] | AdminRole,
) -> Callable[..., Awaitable[AdminIdentity]]:
    """Dependency factory restricting a route to ``allowed_roles``.

    Authorization runs only after authentication succeeded.
    """
    allowed = role_set(allowed_roles)

    async def _require_roles(
        admin: AdminIdentity = Depends(get_current_admin),
    ) -> AdminIdentity:
        if not authorize(admin, allowed):
            logger.warning(f"Admin {admin.username} with role {admin.role} denied")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {admin.role} is not permitted to access this resource",
            )
        return admin

    return _require_roles
