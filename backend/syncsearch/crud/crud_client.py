"""CRUD operations for clients."""

from typing import Any, Optional, Union

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from syncsearch.crud._base import CRUDBase
from syncsearch.models.client import Client
from syncsearch.schemas.client import ClientCreate, ClientUpdate
from syncsearch.schemas.source_config import SourceConfig

_sources_adapter = TypeAdapter(list[SourceConfig])


def _dump_sources(sources: list) -> list[dict]:
    """Validate and serialize source configurations for the JSON column."""
    return _sources_adapter.dump_python(_sources_adapter.validate_python(sources), mode="json")


class CRUDClient(CRUDBase[Client, ClientCreate, ClientUpdate]):
    """CRUD operations for clients."""

    async def get_by_api_key(self, db: AsyncSession, api_key: str) -> Optional[Client]:
        """Get the client that owns an API key."""
        result = await db.execute(select(Client).where(Client.api_key == api_key))
        return result.unique().scalar_one_or_none()

    async def create_with_api_key(
        self, db: AsyncSession, *, obj_in: ClientCreate, api_key: str
    ) -> Client:
        """Create a client with a pre-generated API key."""
        data = obj_in.model_dump(exclude={"sources"})
        data["sources"] = _dump_sources(obj_in.sources)
        data["api_key"] = api_key
        return await self.create(db, obj_in=data)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: Client,
        obj_in: Union[ClientUpdate, dict[str, Any]],
    ) -> Client:
        """Update a client, serializing source configurations."""
        if not isinstance(obj_in, dict):
            data = obj_in.model_dump(exclude_unset=True, exclude={"sources"})
            if "sources" in obj_in.model_fields_set and obj_in.sources is not None:
                data["sources"] = obj_in.sources
            obj_in = data
        if obj_in.get("sources") is not None:
            obj_in = {**obj_in, "sources": _dump_sources(obj_in["sources"])}
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)


client = CRUDClient(Client)
