from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ticketgate.config import get_settings


_settings = get_settings()

engine = create_async_engine(
    _settings.database_url,
    echo=_settings.debug,
    pool_size=_settings.db_pool_size,
    max_overflow=_settings.db_max_overflow,
    pool_pre_ping=True,
)

# Stores open one short session per operation; rows must stay readable after commit.
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def ping() -> None:
    """Round-trip to the database. Raises SQLAlchemyError when it is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
