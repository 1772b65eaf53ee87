"""CRUD operations for tags."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from syncsearch.crud._base import CRUDBase
from syncsearch.models.tag import Tag
from syncsearch.schemas.client import TagCreate


class CRUDTag(CRUDBase[Tag, TagCreate, TagCreate]):
    """CRUD operations for tags."""

    async def get_by_name(self, db: AsyncSession, client_id: UUID, name: str) -> Optional[Tag]:
        """Get a client's tag by name, ignoring case."""
        result = await db.execute(
            select(Tag).where(Tag.client_id == client_id, func.lower(Tag.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def get_for_client(self, db: AsyncSession, client_id: UUID, tag_id: UUID) -> Optional[Tag]:
        """Get a tag only if it belongs to the client."""
        result = await db.execute(select(Tag).where(Tag.id == tag_id, Tag.client_id == client_id))
        return result.scalar_one_or_none()


tag = CRUDTag(Tag)
