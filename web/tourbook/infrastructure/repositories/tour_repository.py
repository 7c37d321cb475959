from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.core import BaseRepository
from tourbook.models import Tour


class TourRepository(BaseRepository[Tour]):
    """Read access to the catalog's tours"""
    
    def __init__(self, session: AsyncSession):
        super().__init__(Tour, session)
    
    async def get_capacity(self, tour_id: int) -> Optional[int]:
        """Return ``max_group_size`` for a tour, or None if it does not exist"""
        result = await self.session.execute(
            select(Tour.max_group_size).where(Tour.id == tour_id)
        )
        return result.scalar_one_or_none()
