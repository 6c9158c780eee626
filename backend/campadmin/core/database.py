"""campadmin Database Configuration - Async SQLAlchemy."""

import asyncio
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from campadmin.core.config import settings
from campadmin.core.logging import get_logger

logger = get_logger("database")

# An authenticated request can hold up to three connections at once: its own
# session plus the revocation and admin lookups made by the auth gate.
# pool_timeout stays below REQUEST_TIMEOUT_SECONDS so pool exhaustion shows
# up as a 503/504 from the gate rather than a dropped request.
engine = create_async_engine(
    str(settings.database_url),
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
    pool_pre_ping=True,
    echo=settings.debug and settings.log_level == "DEBUG",
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()

# /health is excluded from the request deadline, so it carries its own
HEALTH_CHECK_TIMEOUT_SECONDS = 3.0


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for the admin and login routes."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            # Includes asyncio.CancelledError from the request deadline
            await session.rollback()
            raise


async def check_db_connection(timeout: float = HEALTH_CHECK_TIMEOUT_SECONDS) -> bool:
    """True if the database answers ``SELECT 1`` within ``timeout`` seconds."""
    try:
        async with asyncio.timeout(timeout):
            async with async_session_maker() as session:
                await session.execute(text("SELECT 1"))
        return True
    except TimeoutError:
        logger.warning(f"Database health check exceeded {timeout}s")
        return False
    except OSError as e:
        logger.debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        logger.warning(f"Unexpected error checking database connection: {e}")
        return False
