from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.core import BaseRepository
from tourbook.models import User


class UserRepository(BaseRepository[User]):
    """User repository implementation"""
    
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)
    
    async def exists(self, user_id: int) -> bool:
        return await self.get(user_id) is not None
