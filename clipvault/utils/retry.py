# clipvault/utils/retry.py
"""
Small retry helper for single-object attribute writes.
Bulk paths (listing, batch puts, sweeps) never retry: their caller re-runs the
whole idempotent operation instead.
"""

import asyncio

from clipvault.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF = 0.5     # seconds × attempt number


async def retry_linear(fn, *args, attempts: int = DEFAULT_ATTEMPTS, backoff: float = DEFAULT_BACKOFF,
                       retry_on: tuple = (Exception,), label: str = "operation", **kwargs):
    """Await fn(*args, **kwargs), retrying with a linearly growing delay."""
    for attempt in range(1, attempts + 1):
        try:
            return await fn(*args, **kwargs)
        except retry_on as e:
            if attempt == attempts:
                logger.error(f"{label} failed after {attempts} attempts: {e}")
                raise
            delay = backoff * attempt
            logger.warning(f"{label} failed (attempt {attempt}/{attempts}): {e}, retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
