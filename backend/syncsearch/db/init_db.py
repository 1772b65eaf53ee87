"""Database initialization."""

from sqlalchemy.ext.asyncio import AsyncEngine

from syncsearch import models  # noqa: F401
from syncsearch.core.logging import logger
from syncsearch.models._base import Base


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables are ready")
