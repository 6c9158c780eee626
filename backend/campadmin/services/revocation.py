"""Revocation store for session tokens.

Logout puts a token into an expiring set; the authentication gate asks
the set before trusting a token. Entries only need to outlive the token
they revoke, so every backend drops them after a fixed retention window.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campadmin.models.revoked_token import RevokedToken

logger = logging.getLogger(__name__)


class RevocationError(Exception):
    """Base revocation store error."""

    pass


class RevocationTimeoutError(RevocationError):
    """The store did not answer within the lookup bound."""

    pass


class RevocationUnavailableError(RevocationError):
    """The store failed to answer."""

    pass


class ExpiringSet(Protocol):
    """A set whose members disappear after a retention window."""

    async def add(self, key: str) -> None:
        """Insert ``key``. Inserting an existing key is not an error."""
        ...

    async def contains(self, key: str) -> bool:
        """True while ``key`` is inside its retention window."""
        ...

    async def purge_expired(self) -> int:
        """Drop members past their retention window; return how many."""
        ...


class MemoryExpiringSet:
    """Process-local expiring set for tests and single-node deployments."""

    def __init__(
        self,
        retention_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._members: dict[str, float] = {}  # key -> inserted_at

    def __len__(self) -> int:
        return len(self._members)

    async def add(self, key: str) -> None:
        # Keep the first insertion time; re-adding must not extend retention
        self._members.setdefault(key, self._clock())

    async def contains(self, key: str) -> bool:
        inserted_at = self._members.get(key)
        if inserted_at is None:
            return False
        if self._clock() - inserted_at >= self.retention_seconds:
            del self._members[key]
            return False
        return True

    async def purge_expired(self) -> int:
        cutoff = self._clock() - self.retention_seconds
        expired = [key for key, inserted_at in self._members.items() if inserted_at <= cutoff]
        for key in expired:
            del self._members[key]
        return len(expired)


class DatabaseExpiringSet:
    """Expiring set persisted in the ``revoked_tokens`` table.

    PostgreSQL has no native TTL, so liveness is decided by ``created_at``
    at query time and dead rows are deleted by ``purge_expired``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retention_seconds: float,
    ) -> None:
        self._session_factory = session_factory
        self.retention_seconds = retention_seconds

    def _cutoff(self) -> datetime:
        return datetime.now(UTC) - timedelta(seconds=self.retention_seconds)

    async def add(self, key: str) -> None:
        stmt = (
            insert(RevokedToken)
            .values(token=key, created_at=datetime.now(UTC))
            .on_conflict_do_nothing(index_elements=[RevokedToken.token])
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def contains(self, key: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RevokedToken.token).where(
                    RevokedToken.token == key,
                    RevokedToken.created_at > self._cutoff(),
                )
            )
            return result.scalar_one_or_none() is not None

    async def purge_expired(self) -> int:
        async with self._session_factory() as session:
            result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                delete(RevokedToken).where(RevokedToken.created_at <= self._cutoff())
            )
            await session.commit()
            return result.rowcount


class RevocationStore:
    """Token denylist with a bounded membership check."""

    def __init__(self, backend: ExpiringSet, lookup_timeout: float = 3.0) -> None:
        self.backend = backend
        self.lookup_timeout = lookup_timeout

    async def revoke(self, token: str) -> bool:
        """Revoke ``token`` within ``lookup_timeout`` seconds.

        Revoking twice succeeds both times. Raises the same errors as
        ``is_revoked``.
        """
        try:
            async with asyncio.timeout(self.lookup_timeout):
                await self.backend.add(token)
        except TimeoutError as e:
            raise RevocationTimeoutError(f"Revocation write exceeded {self.lookup_timeout}s") from e
        except (SQLAlchemyError, OSError) as e:
            raise RevocationUnavailableError(f"Revocation write failed: {e}") from e
        return True

    async def is_revoked(self, token: str) -> bool:
        """Check membership within ``lookup_timeout`` seconds.

        Raises:
            RevocationTimeoutError: the backend did not answer in time
            RevocationUnavailableError: the backend failed
        """
        try:
            async with asyncio.timeout(self.lookup_timeout):
                return await self.backend.contains(token)
        except TimeoutError as e:
            raise RevocationTimeoutError(
                f"Revocation lookup exceeded {self.lookup_timeout}s"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise RevocationUnavailableError(f"Revocation lookup failed: {e}") from e

    async def purge_expired(self) -> int:
        return await self.backend.purge_expired()


async def revocation_purge_loop(store: RevocationStore, interval_seconds: float = 300) -> None:
    """Periodically delete revoked tokens whose retention window has passed."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            removed = await store.purge_expired()
            if removed > 0:
                logger.info(f"Purged {removed} expired revoked tokens")
        except asyncio.CancelledError:
            break
        except Exception:
            logger.exception("Error purging revoked tokens")
