"""Background sweep of rate limiter state."""

import asyncio
import logging

from campadmin.middleware.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


async def rate_limit_sweep_loop(rate_limiter: RateLimiter, interval_seconds: float | None = None) -> None:
    """Sweep stale windows every ``interval_seconds`` (defaults to the window size)."""
    interval = interval_seconds if interval_seconds is not None else rate_limiter.window_seconds
    while True:
        try:
            await asyncio.sleep(interval)
            removed = await rate_limiter.sweep()
            if removed > 0:
                logger.debug(f"Rate limiter sweep: removed {removed} idle addresses")
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning(f"Rate limiter sweep error: {e}")
