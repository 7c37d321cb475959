import logging

from sqlalchemy import update, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.core import BaseRepository
from tourbook.models import TourDateSlot

logger = logging.getLogger(__name__)


class SlotRepository(BaseRepository[TourDateSlot]):
    """Per-(tour, day) rows that admissions lock before counting seats"""
    
    def __init__(self, session: AsyncSession):
        super().__init__(TourDateSlot, session)
    
    async def set_lock_timeout(self, seconds: float) -> None:
        """Bound row-lock waits for the current transaction (PostgreSQL only)"""
        if self.session.get_bind().dialect.name != "postgresql":
            return
        await self.session.execute(text(f"SET LOCAL lock_timeout = '{int(seconds * 1000)}ms'"))
    
    async def claim(self, tour_id: int, date_key: str) -> bool:
        """Bump the slot version; the row stays locked until the transaction ends.

        Returns False when no slot row exists yet for the pair.
        """
        stmt = (
            update(TourDateSlot)
            .where(
                TourDateSlot.tour_id == tour_id,
                TourDateSlot.date_key == date_key,
            )
            .values(version=TourDateSlot.version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
    
    async def create_slot(self, tour_id: int, date_key: str) -> bool:
        """Insert the slot row in its own transaction.

        Returns False if a concurrent request created it first.
        """
        self.session.add(TourDateSlot(tour_id=tour_id, date_key=date_key, version=0))
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.debug("Slot %s/%s created concurrently", tour_id, date_key)
            return False
        return True
