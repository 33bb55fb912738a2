# backend/carrental/db/session.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from carrental.core.config import Settings, settings  # NOTE: instance import


def engine_options(config: Settings) -> dict:
    if config.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    # MySQL closes idle connections after wait_timeout.
    # READ COMMITTED: reads after lock_car see rows committed while waiting,
    # not the snapshot taken by the request's first query.
    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "isolation_level": "READ COMMITTED",
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    future=True,
    **engine_options(settings),
)

# objects stay readable after commit; routers serialize them afterwards
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# FastAPI dependency
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; anything left uncommitted is rolled back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
