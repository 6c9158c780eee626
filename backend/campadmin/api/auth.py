"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from campadmin.api.deps import (
    get_auth_gate,
    get_current_admin,
    get_token_codec,
    raise_for_failure,
)
from campadmin.core import get_db
from campadmin.schemas.auth import (
    AdminSummary,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    TokenResponse,
    VerifyResponse,
)
from campadmin.services.auth import (
    FAILURE_MESSAGES,
    AuthFailure,
    AuthGate,
    AuthService,
    InvalidCredentialsError,
    to_identity,
)
from campadmin.services.revocation import RevocationTimeoutError, RevocationUnavailableError
from campadmin.services.tokens import AdminIdentity, TokenCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    codec: TokenCodec = Depends(get_token_codec),
) -> TokenResponse:
    """Authenticate with username and password and get a session token.

    Rate limited per client address by RateLimitMiddleware.
    """
    try:
        user = await auth_service.authenticate(
            username=request.username,
            password=request.password,
        )
    except InvalidCredentialsError as e:
        logger.info(f"Failed login for username: {request.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        ) from e

    token = auth_service.create_token(codec, user)
    logger.info(f"Admin logged in: {user.username}")
    return TokenResponse(
        **token,
        admin=AdminSummary.model_validate(to_identity(user)),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> MessageResponse:
    """Revoke the presented session token for the rest of its lifetime.

    Logging out with an already revoked token succeeds again.
    """
    auth = await gate.authenticate(request.headers.get("Authorization"))
    if auth.reason == AuthFailure.REVOKED:
        return MessageResponse(message="Logged out successfully")
    raise_for_failure(request, auth)

    try:
        await gate.revocations.revoke(auth.token)
    except RevocationTimeoutError as e:
        logger.warning(f"Logout timed out: {e}")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=FAILURE_MESSAGES[AuthFailure.TIMEOUT],
        ) from e
    except RevocationUnavailableError as e:
        logger.error(f"Logout failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=FAILURE_MESSAGES[AuthFailure.UNAVAILABLE],
        ) from e

    logger.info(f"Admin logged out: {auth.identity.username}")
    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    admin: AdminIdentity = Depends(get_current_admin),
) -> VerifyResponse:
    """Confirm the token is valid and return the identity bound to it."""
    return VerifyResponse(admin=AdminSummary.model_validate(admin))


@router.get("/me", response_model=ProfileResponse)
async def get_current_admin_profile(
    admin: AdminIdentity = Depends(get_current_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Get the current admin's full profile."""
    user = await auth_service.get_user_by_id(admin.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
    return ProfileResponse.model_validate(user)
