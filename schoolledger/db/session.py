from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from schoolledger.core.config import settings


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # aiosqlite: no server side to drop idle connections
        return {}
    # pool_pre_ping: check connection is alive before use.
    # pool_recycle: discard connections after this many seconds to avoid stale connections.
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    future=True,
    **_engine_options(settings.database_url),
)

# Shared by request handlers (via get_db) and the promotion scheduler, which opens
# one session per due config. expire_on_commit=False keeps loaded rows readable after
# the per-student commits of a promotion run.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
