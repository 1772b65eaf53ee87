"""SQLAlchemy implementation of the durable store."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from syncsearch import crud, schemas
from syncsearch.core.exceptions import DuplicateTagError, NotFoundException
from syncsearch.db.store import DurableStore


class SqlAlchemyStore(DurableStore):
    """Durable store backed by an async SQLAlchemy session factory.

    Each call runs in its own session and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Create the store.

        Args:
        ----
            session_factory (async_sessionmaker): Factory for new sessions.

        """
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def _load_client(self, db: AsyncSession, client_id: UUID) -> schemas.Client:
        db_client = await crud.client.get(db, client_id)
        if db_client is None:
            raise NotFoundException(f"Client {client_id} not found")
        await db.refresh(db_client, attribute_names=["tags", "synced_items"])
        return schemas.Client.model_validate(db_client)

    # ------------------------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------------------------

    async def get_client(self, client_id: UUID) -> schemas.Client:
        """Load a client with its tags and synced items."""
        async with self._session() as db:
            return await self._load_client(db, client_id)

    async def get_client_by_api_key(self, api_key: str) -> schemas.Client:
        """Load the client owning an API key."""
        async with self._session() as db:
            db_client = await crud.client.get_by_api_key(db, api_key)
            if db_client is None:
                raise NotFoundException("No client for this API key")
            return await self._load_client(db, db_client.id)

    async def list_clients(self) -> list[schemas.Client]:
        """Load every client."""
        async with self._session() as db:
            db_clients = await crud.client.get_all(db, limit=10_000)
            return [schemas.Client.model_validate(db_client) for db_client in db_clients]

    async def create_client(self, client_in: schemas.ClientCreate, api_key: str) -> schemas.Client:
        """Create a client with a pre-generated API key."""
        async with self._session() as db:
            db_client = await crud.client.create_with_api_key(db, obj_in=client_in, api_key=api_key)
            return await self._load_client(db, db_client.id)

    async def update_client_fields(self, client_id: UUID, fields: dict[str, Any]) -> schemas.Client:
        """Apply a partial update to a client's scalar fields."""
        async with self._session() as db:
            db_client = await crud.client.get(db, client_id)
            if db_client is None:
                raise NotFoundException(f"Client {client_id} not found")
            await crud.client.update(db, db_obj=db_client, obj_in=fields)
            return await self._load_client(db, client_id)

    # ------------------------------------------------------------------------------------
    # Synced items
    # ------------------------------------------------------------------------------------

    async def upsert_items(
        self, client_id: UUID, items: Sequence[schemas.SyncedItem]
    ) -> list[schemas.SyncedItem]:
        """Insert or update items keyed on (client_id, remote_id)."""
        async with self._session() as db:
            stored = [await crud.synced_item.upsert(db, client_id, item) for item in items]
            return [schemas.SyncedItem.model_validate(db_item) for db_item in stored]

    async def delete_items(self, ids: Sequence[UUID]) -> int:
        """Delete items by store id."""
        async with self._session() as db:
            return await crud.synced_item.remove_many(db, ids)

    async def delete_items_by_remote_id(self, client_id: UUID, remote_ids: Sequence[str]) -> int:
        """Delete a client's items by remote id."""
        async with self._session() as db:
            return await crud.synced_item.remove_by_remote_ids(db, client_id, remote_ids)

    async def search_items(
        self, client_id: UUID, text: str, limit: int = 10
    ) -> list[schemas.SyncedItem]:
        """Case-insensitive text search over item name, summary and content."""
        async with self._session() as db:
            db_items = await crud.synced_item.search(db, client_id, text, limit=limit)
            return [schemas.SyncedItem.model_validate(db_item) for db_item in db_items]

    # ------------------------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------------------------

    async def add_tag(self, client_id: UUID, name: str) -> schemas.Tag:
        """Add a tag to a client."""
        tag_in = schemas.TagCreate(name=name)
        try:
            async with self._session() as db:
                if await crud.client.get(db, client_id) is None:
                    raise NotFoundException(f"Client {client_id} not found")
                if await crud.tag.get_by_name(db, client_id, tag_in.name):
                    raise DuplicateTagError(tag_in.name)
                db_tag = await crud.tag.create(
                    db, obj_in={"client_id": client_id, "name": tag_in.name}
                )
                return schemas.Tag.model_validate(db_tag)
        except IntegrityError as e:
            raise DuplicateTagError(tag_in.name) from e

    async def remove_tag(self, client_id: UUID, tag_id: UUID) -> None:
        """Remove a tag from a client."""
        async with self._session() as db:
            db_tag = await crud.tag.get_for_client(db, client_id, tag_id)
            if db_tag is None:
                raise NotFoundException(f"Tag {tag_id} not found")
            await crud.tag.remove(db, id=tag_id)

    # ------------------------------------------------------------------------------------
    # System settings
    # ------------------------------------------------------------------------------------

    async def get_settings(self) -> Optional[schemas.SystemSettings]:
        """Load the system settings, if ever saved."""
        async with self._session() as db:
            db_settings = await crud.system_settings.get_current(db)
            if db_settings is None:
                return None
            return schemas.SystemSettings.model_validate(db_settings)

    async def save_settings(self, settings_in: schemas.SystemSettingsUpdate) -> schemas.SystemSettings:
        """Create or update the system settings."""
        async with self._session() as db:
            db_settings = await crud.system_settings.save(db, settings_in)
            return schemas.SystemSettings.model_validate(db_settings)
