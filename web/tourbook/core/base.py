from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, Any, Dict
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.models import Base

ModelType = TypeVar('ModelType', bound=Base)


class IRepository(ABC, Generic[ModelType]):
    """Base repository interface"""
    
    @abstractmethod
    async def get(self, id: Any) -> Optional[ModelType]:
        """Get entity by ID"""
        pass
    
    @abstractmethod
    async def create(self, *, obj_in: Dict[str, Any]) -> ModelType:
        """Create new entity"""
        pass
    
    @abstractmethod
    async def delete(self, *, id: Any) -> bool:
        """Delete entity"""
        pass


class BaseRepository(IRepository[ModelType], Generic[ModelType]):
    """Row-level helpers shared by the concrete repositories.

    Writes only flush; committing is up to the service (or the slot lock)
    that owns the transaction.
    """
    
    def __init__(self, model: type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session
    
    async def get(self, id: Any) -> Optional[ModelType]:
        return await self.session.get(self.model, id)
    
    async def create(self, *, obj_in: Dict[str, Any]) -> ModelType:
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.flush()
        return db_obj
    
    async def delete(self, *, id: Any) -> bool:
        db_obj = await self.get(id)
        if not db_obj:
            return False
        
        await self.session.delete(db_obj)
        await self.session.flush()
        return True


class BaseService:
    """Base service implementation with common dependencies"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
