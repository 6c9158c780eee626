"""Authentication service: passwords, login and the authentication gate."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campadmin.models.admin_user import AdminRole, AdminUser
from campadmin.services.revocation import (
    RevocationStore,
    RevocationTimeoutError,
    RevocationUnavailableError,
)
from campadmin.services.tokens import AdminIdentity, TokenCodec

logger = logging.getLogger(__name__)

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


class AuthError(Exception):
    """Base authentication error."""

    pass


class InvalidCredentialsError(AuthError):
    """Invalid username or password."""

    pass


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False


def to_identity(user: AdminUser) -> AdminIdentity:
    return AdminIdentity(id=str(user.id), username=user.username, role=AdminRole(user.role))


# --- Admin directory ---


class AdminDirectory(Protocol):
    """Lookup of admin identities by id."""

    async def get_by_id(self, admin_id: str) -> AdminIdentity | None: ...


class DatabaseAdminDirectory:
    """AdminDirectory over the admin_users table.

    Opens its own session so the gate can run outside a request's session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, admin_id: str) -> AdminIdentity | None:
        try:
            user_id = uuid.UUID(admin_id)
        except (ValueError, TypeError):
            return None

        async with self._session_factory() as session:
            result = await session.execute(select(AdminUser).where(AdminUser.id == user_id))
            user = result.scalar_one_or_none()
            return to_identity(user) if user is not None else None


# --- Authentication gate ---


class AuthFailure(StrEnum):
    """Why authentication failed."""

    MISSING_CREDENTIAL = "missing credential"
    REVOKED = "revoked"
    INVALID_TOKEN = "invalid or expired"
    NOT_FOUND = "not found"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


# Credential failures share one status and one message so a caller
# cannot tell which check rejected the token.
FAILURE_STATUS_CODES: dict[AuthFailure, int] = {
    AuthFailure.MISSING_CREDENTIAL: 401,
    AuthFailure.REVOKED: 401,
    AuthFailure.INVALID_TOKEN: 401,
    AuthFailure.NOT_FOUND: 404,
    AuthFailure.TIMEOUT: 504,
    AuthFailure.UNAVAILABLE: 503,
}

FAILURE_MESSAGES: dict[AuthFailure, str] = {
    AuthFailure.MISSING_CREDENTIAL: "Invalid or missing credentials",
    AuthFailure.REVOKED: "Invalid or missing credentials",
    AuthFailure.INVALID_TOKEN: "Invalid or missing credentials",
    AuthFailure.NOT_FOUND: "Admin not found",
    AuthFailure.TIMEOUT: "Authentication timed out, please retry",
    AuthFailure.UNAVAILABLE: "Authentication service unavailable, please retry",
}


@dataclass(frozen=True)
class AuthResult:
    """Outcome of AuthGate.authenticate()."""

    ok: bool
    identity: AdminIdentity | None = None
    reason: AuthFailure | None = None
    token: str | None = None

    @classmethod
    def success(cls, identity: AdminIdentity, token: str) -> "AuthResult":
        return cls(ok=True, identity=identity, token=token)

    @classmethod
    def failure(cls, reason: AuthFailure) -> "AuthResult":
        return cls(ok=False, reason=reason)

    @property
    def status_code(self) -> int:
        if self.ok or self.reason is None:
            return 200
        return FAILURE_STATUS_CODES[self.reason]

    @property
    def message(self) -> str:
        if self.ok or self.reason is None:
            return "Authenticated"
        return FAILURE_MESSAGES[self.reason]


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


class AuthGate:
    """Turns an Authorization header into an identity or a failure reason.

    Checks run cheapest-first and each may short-circuit: header shape,
    revocation, signature/expiry, then the admin lookup. Revocation comes
    before the signature so a logged-out token is rejected without any
    further work.
    """

    def __init__(
        self,
        codec: TokenCodec,
        revocations: RevocationStore,
        directory: AdminDirectory,
        lookup_timeout: float = 5.0,
    ) -> None:
        self.codec = codec
        self.revocations = revocations
        self.directory = directory
        self.lookup_timeout = lookup_timeout

    async def authenticate(self, authorization: str | None) -> AuthResult:
        token = extract_bearer_token(authorization)
        if token is None:
            return AuthResult.failure(AuthFailure.MISSING_CREDENTIAL)

        try:
            if await self.revocations.is_revoked(token):
                logger.info("Rejected revoked session token")
                return AuthResult.failure(AuthFailure.REVOKED)
        except RevocationTimeoutError as e:
            logger.warning(f"Revocation check timed out: {e}")
            return AuthResult.failure(AuthFailure.TIMEOUT)
        except RevocationUnavailableError as e:
            logger.error(f"Revocation check failed: {e}")
            return AuthResult.failure(AuthFailure.UNAVAILABLE)

        claimed = self.codec.verify(token)
        if claimed is None:
            return AuthResult.failure(AuthFailure.INVALID_TOKEN)

        try:
            async with asyncio.timeout(self.lookup_timeout):
                identity = await self.directory.get_by_id(claimed.id)
        except TimeoutError:
            logger.warning(f"Admin lookup for {claimed.id} exceeded {self.lookup_timeout}s")
            return AuthResult.failure(AuthFailure.TIMEOUT)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Admin lookup for {claimed.id} failed: {e}")
            return AuthResult.failure(AuthFailure.UNAVAILABLE)

        if identity is None:
            # Deleted after the token was issued
            logger.info(f"Token subject {claimed.id} no longer exists")
            return AuthResult.failure(AuthFailure.NOT_FOUND)

        return AuthResult.success(identity, token)


# --- Login ---


class AuthService:
    """Service for password authentication against admin_users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_username(self, username: str) -> AdminUser | None:
        result = await self.session.execute(select(AdminUser).where(AdminUser.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID | str) -> AdminUser | None:
        try:
            user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None
        result = await self.session.execute(select(AdminUser).where(AdminUser.id == user_id))
        return result.scalar_one_or_none()

    async def authenticate(self, username: str, password: str) -> AdminUser:
        """Check credentials and record the login.

        Raises InvalidCredentialsError for both "user not found" and
        "wrong password" to prevent user enumeration.
        """
        user = await self.get_user_by_username(username)

        if user is None:
            # Perform a dummy hash to prevent timing attacks
            verify_password(password, hash_password("dummy"))
            raise InvalidCredentialsError("Invalid username or password")

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid username or password")

        user.last_login_at = datetime.now(UTC)
        await self.session.commit()

        return user

    def create_token(self, codec: TokenCodec, user: AdminUser) -> dict:
        """Issue a session token for a freshly authenticated user."""
        return {
            "access_token": codec.issue(to_identity(user)),
            "token_type": "bearer",
            "expires_in": codec.lifetime_seconds,
        }
