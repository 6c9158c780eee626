"""Session token codec.

Issues and verifies HMAC-signed JWTs carrying an admin's id, username and
role. Verification is total: any malformed, forged, expired or incomplete
token yields ``None`` so callers can answer with one uniform 401.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from campadmin.models.admin_user import AdminRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminIdentity:
    """Who is calling. Safe to hand to route handlers (no secrets)."""

    id: str
    username: str
    role: AdminRole


class TokenCodec:
    """Encode/decode signed session tokens.

    Pure given the secret and the clock: no I/O, no state.
    """

    REQUIRED_CLAIMS = ("sub", "username", "role", "iat", "exp")

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive")
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    def issue(self, identity: AdminIdentity) -> str:
        """Create a token for ``identity`` that expires after the lifetime."""
        issued_at = int(self._clock())
        payload = {
            "sub": str(identity.id),
            "username": identity.username,
            "role": AdminRole(identity.role).value,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
            # Distinguishes tokens minted for the same admin in the same second
            "jti": secrets.token_hex(16),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token)

    def decode(self, token: str) -> dict[str, Any] | None:
        """Return the verified claims, or None if the token is unusable."""
        if not token or not isinstance(token, str):
            return None
        try:
            # Expiry is checked against the injected clock below, not PyJWT's
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except PyJWTError as e:
            logger.debug(f"Rejected session token: {e}")
            return None

        if any(claim not in payload for claim in self.REQUIRED_CLAIMS):
            logger.debug("Rejected session token: missing claims")
            return None

        exp = payload["exp"]
        if not isinstance(exp, int | float) or self._clock() >= exp:
            logger.debug("Rejected session token: expired")
            return None

        return payload

    def verify(self, token: str | None) -> AdminIdentity | None:
        """Return the identity encoded in ``token``, or None."""
        payload = self.decode(token) if token else None
        if payload is None:
            return None

        try:
            role = AdminRole(payload["role"])
        except ValueError:
            logger.debug(f"Rejected session token: unknown role {payload['role']!r}")
            return None

        subject = payload["sub"]
        username = payload["username"]
        if not subject or not isinstance(subject, str) or not isinstance(username, str):
            return None

        return AdminIdentity(id=subject, username=username, role=role)

