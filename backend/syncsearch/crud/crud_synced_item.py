"""CRUD operations for synced items."""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from syncsearch.crud._base import CRUDBase
from syncsearch.models.synced_item import SyncedItem
from syncsearch.schemas.synced_item import SyncedItem as SyncedItemSchema

_UPSERT_FIELDS = (
    "name",
    "source",
    "content_kind",
    "mime_type",
    "status",
    "status_message",
    "remote_modified_at",
    "last_synced_at",
    "summary",
    "content",
)


class CRUDSyncedItem(CRUDBase[SyncedItem, SyncedItemSchema, SyncedItemSchema]):
    """CRUD operations for synced items."""

    async def get_by_remote_id(
        self, db: AsyncSession, client_id: UUID, remote_id: str
    ) -> Optional[SyncedItem]:
        """Get the item for a (client, remote id) pair."""
        result = await db.execute(
            select(SyncedItem).where(
                SyncedItem.client_id == client_id, SyncedItem.remote_id == remote_id
            )
        )
        return result.scalar_one_or_none()

    async def get_all_for_client(self, db: AsyncSession, client_id: UUID) -> list[SyncedItem]:
        """Get every item of a client, by name."""
        result = await db.execute(
            select(SyncedItem).where(SyncedItem.client_id == client_id).order_by(SyncedItem.name)
        )
        return list(result.scalars().all())

    async def upsert(self, db: AsyncSession, client_id: UUID, item: SyncedItemSchema) -> SyncedItem:
        """Insert or update the row keyed on (client_id, remote_id).

        Args:
        ----
            db (AsyncSession): The database session.
            client_id (UUID): The owning client.
            item (SyncedItemSchema): The merged item state.

        Returns:
        -------
            SyncedItem: The stored row.

        """
        values = {field: getattr(item, field) for field in _UPSERT_FIELDS}
        values["source"] = item.source.value
        values["content_kind"] = item.content_kind.value
        values["status"] = item.status.value

        db_obj = await self.get_by_remote_id(db, client_id, item.remote_id)
        if db_obj is None:
            db_obj = SyncedItem(client_id=client_id, remote_id=item.remote_id, **values)
            if item.id is not None:
                db_obj.id = item.id
            db.add(db_obj)
        else:
            for key, value in values.items():
                setattr(db_obj, key, value)
        await db.flush()
        return db_obj

    async def remove_many(self, db: AsyncSession, ids: Sequence[UUID]) -> int:
        """Delete items by store id."""
        if not ids:
            return 0
        result = await db.execute(delete(SyncedItem).where(SyncedItem.id.in_(list(ids))))
        return result.rowcount or 0

    async def remove_by_remote_ids(
        self, db: AsyncSession, client_id: UUID, remote_ids: Sequence[str]
    ) -> int:
        """Delete a client's items by remote id."""
        if not remote_ids:
            return 0
        result = await db.execute(
            delete(SyncedItem).where(
                SyncedItem.client_id == client_id, SyncedItem.remote_id.in_(list(remote_ids))
            )
        )
        return result.rowcount or 0

    async def search(
        self, db: AsyncSession, client_id: UUID, text: str, limit: int = 10
    ) -> list[SyncedItem]:
        """Case-insensitive match of ``text`` in name, summary or content."""
        pattern = f"%{text.lower()}%"
        result = await db.execute(
            select(SyncedItem)
            .where(
                SyncedItem.client_id == client_id,
                or_(
                    func.lower(SyncedItem.name).like(pattern),
                    func.lower(SyncedItem.summary).like(pattern),
                    func.lower(SyncedItem.content).like(pattern),
                ),
            )
            .order_by(SyncedItem.name)
            .limit(limit)
        )
        return list(result.scalars().all())


synced_item = CRUDSyncedItem(SyncedItem)
