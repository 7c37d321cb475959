from typing import Any, AsyncGenerator, Dict
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from tourbook.core import Settings, get_settings


def engine_options(settings: Settings) -> Dict[str, Any]:
    """Engine keyword arguments for the configured backend.

    SQLite waits on its write lock instead of failing at once, so concurrent
    admissions queue up the same way they do on PostgreSQL row locks.
    """
    options: Dict[str, Any] = {"echo": settings.DB_ECHO}
    if make_url(settings.DB_DSN).get_backend_name() == "sqlite":
        options["connect_args"] = {"timeout": max(settings.ADMISSION_LOCK_TIMEOUT, 1.0)}
    else:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["pool_pre_ping"] = True  # Enable connection health checks
    return options


settings = get_settings()

engine = create_async_engine(settings.DB_DSN, **engine_options(settings))

# Services commit explicitly; objects stay readable after commit
AsyncSessionFactory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; commits what the handler left pending"""
    async with AsyncSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
