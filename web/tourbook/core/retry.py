"""Caller-side retry for transient persistence failures."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .config import get_settings
from .exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> T:
    """Await *operation* again while it raises :class:`TransientStoreError`.

    The delay doubles after every failed attempt. Any other exception, and the
    last ``TransientStoreError`` once *attempts* are used up, propagates.
    """
    if attempts is None or base_delay is None:
        settings = get_settings()
        attempts = attempts or settings.TRANSIENT_RETRY_ATTEMPTS
        base_delay = settings.TRANSIENT_RETRY_BASE_DELAY if base_delay is None else base_delay

    attempt = 1
    while True:
        try:
            return await operation()
        except TransientStoreError as exc:
            if attempt >= attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Transient store error (attempt %s/%s): %s; retrying in %.2fs",
                attempt, attempts, exc.message, delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
