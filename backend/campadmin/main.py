"""campadmin Backend - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campadmin.api import api_router
from campadmin.api.auth import router as auth_router
from campadmin.api.health import router as health_router
from campadmin.core import async_session_maker, settings, setup_logging
from campadmin.core.config import Settings
from campadmin.core.logging import get_logger
from campadmin.middleware import (
    PathRateLimit,
    RateLimiter,
    RateLimitMiddleware,
    RequestTimeoutMiddleware,
    rate_limit_sweep_loop,
)
from campadmin.services.auth import AuthGate, DatabaseAdminDirectory
from campadmin.services.revocation import (
    DatabaseExpiringSet,
    RevocationStore,
    revocation_purge_loop,
)
from campadmin.services.tokens import TokenCodec

logger = get_logger("main")

# Revoked-token rows are purged this often (the store filters dead rows anyway)
REVOCATION_PURGE_INTERVAL_SECONDS = 300


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


def build_auth_gate(config: Settings) -> AuthGate:
    """Wire the authentication gate to the database-backed collaborators."""
    codec = TokenCodec(
        secret=config.jwt_secret_key,
        lifetime_seconds=config.token_lifetime_seconds,
        algorithm=config.jwt_algorithm,
    )
    revocations = RevocationStore(
        DatabaseExpiringSet(async_session_maker, config.revocation_retention_seconds),
        lookup_timeout=config.revocation_lookup_timeout_seconds,
    )
    return AuthGate(
        codec=codec,
        revocations=revocations,
        directory=DatabaseAdminDirectory(async_session_maker),
        lookup_timeout=config.admin_lookup_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(
        level=settings.log_level,
        format_type="structured" if not settings.debug else "dev",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    tasks: list[asyncio.Task] = []

    sweep_task = asyncio.create_task(rate_limit_sweep_loop(app.state.rate_limiter))
    sweep_task.add_done_callback(task_done_callback)
    tasks.append(sweep_task)

    purge_task = asyncio.create_task(
        revocation_purge_loop(app.state.auth_gate.revocations, REVOCATION_PURGE_INTERVAL_SECONDS)
    )
    purge_task.add_done_callback(task_done_callback)
    tasks.append(purge_task)

    yield

    logger.info("Shutting down...")
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app(
    rate_limiter: RateLimiter | None = None,
    auth_gate: AuthGate | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``rate_limiter`` and ``auth_gate`` default to production instances;
    tests pass isolated ones.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Back office API for the camping-gear storefront",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.state.rate_limiter = rate_limiter or RateLimiter(
        window_seconds=settings.rate_limit_window_seconds
    )
    app.state.auth_gate = auth_gate or build_auth_gate(settings)

    # Starlette runs middleware in reverse order of registration:
    # CORS -> rate limit -> request deadline -> routes
    app.add_middleware(
        RequestTimeoutMiddleware,
        timeout_seconds=settings.request_timeout_seconds,
        exclude_paths=["/health"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        rate_limiter=app.state.rate_limiter,
        default_limit=settings.rate_limit_requests_per_window,
        path_limits=[
            PathRateLimit("/auth/login", settings.rate_limit_login_requests_per_window),
        ],
        exclude_paths=["/health", "/docs", "/redoc", "/openapi.json"],
        trust_forwarded_headers=settings.trust_forwarded_headers,
        trusted_proxy_ips=settings.trusted_proxy_ips_set,
    )

    # CORS middleware - MUST be outermost so CORS headers are present on
    # every response, including 401/429/504 produced by the layers above
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "X-Request-ID",
        ],
    )

    if settings.enable_metrics:
        from prometheus_fastapi_instrumentator import Instrumentator

        Instrumentator(
            excluded_handlers=["/health", "/metrics"],
        ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
        }

    return app


# Application instance
app = create_app()
