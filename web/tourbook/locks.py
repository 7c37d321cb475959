import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from .core import TransientStoreError, get_settings
from .infrastructure.repositories import SlotRepository

logger = logging.getLogger(__name__)


# lock_not_available, serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"55P03", "40001", "40P01"}


def is_transient(exc: DBAPIError) -> bool:
    """True for driver errors worth retrying (lost connection, lock timeout)"""
    if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
        return True
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return sqlstate in RETRYABLE_SQLSTATES


@asynccontextmanager
async def store_errors(session: AsyncSession):
    """Roll back on driver errors and raise transient ones as :class:`TransientStoreError`"""
    try:
        yield
    except DBAPIError as exc:
        await session.rollback()
        if is_transient(exc):
            raise TransientStoreError() from exc
        raise


# ---------------------------------------------------------------------------
#  Seat-locking helper
# ---------------------------------------------------------------------------

class SlotLock:
    """Async context-manager that serialises admissions for one tour day.

    Usage::
        async with SlotLock(session, tour_id, "2025-06-01"):
            # safe to count seats & INSERT booking

    Entering bumps the ``tour_date_slots`` row for the pair, which makes the
    database hold the row (PostgreSQL) or write lock (SQLite) until the
    transaction ends. Leaving the block commits on success and rolls back on
    error, so the check and the insert done inside land together or not at all.

    – The slot row is created on first use in its own transaction; losing
      that race to another request is fine, the claim is simply repeated.
    – Nothing is held in process memory, so the lock also works across
      several server processes.
    """

    def __init__(
        self,
        session: AsyncSession,
        tour_id: int,
        date_key: str,
        *,
        timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ):
        settings = get_settings()
        self.session = session
        self.tour_id = tour_id
        self.date_key = date_key
        self._slots = SlotRepository(session)
        self._timeout = settings.ADMISSION_LOCK_TIMEOUT if timeout is None else timeout
        self._retry_delay = settings.ADMISSION_RETRY_DELAY if retry_delay is None else retry_delay

    async def __aenter__(self):
        start = time.monotonic()
        while True:
            try:
                await self._slots.set_lock_timeout(self._timeout)
                if await self._slots.claim(self.tour_id, self.date_key):
                    return self
                # No slot row yet: end the empty transaction and create one
                await self.session.rollback()
                created = await self._slots.create_slot(self.tour_id, self.date_key)
            except DBAPIError as exc:
                await self.session.rollback()
                if is_transient(exc):
                    raise TransientStoreError("Could not claim booking slot, please retry") from exc
                raise

            if created:
                continue
            if time.monotonic() - start > self._timeout:
                logger.warning("Timed out claiming slot %s/%s", self.tour_id, self.date_key)
                raise TransientStoreError(
                    "Another customer is currently booking this date, please retry in a moment"
                )
            await asyncio.sleep(self._retry_delay)

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            await self.session.rollback()
            return False

        try:
            await self.session.commit()
        except DBAPIError as commit_exc:
            await self.session.rollback()
            if is_transient(commit_exc):
                raise TransientStoreError("Booking could not be saved, please retry") from commit_exc
            raise
        return False
