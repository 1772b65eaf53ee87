"""Client management: creation, settings, API keys and tags."""

import uuid
from uuid import UUID

from syncsearch import schemas
from syncsearch.core.logging import logger
from syncsearch.core.shared_models import SourceKind
from syncsearch.db.store import DurableStore
from syncsearch.search.index import SearchIndex


def generate_api_key() -> str:
    """Opaque bearer credential for the query endpoint."""
    return f"sk-{uuid.uuid4().hex}"


class ClientService:
    """Operator-facing client operations."""

    def __init__(self, store: DurableStore, index: SearchIndex):
        """Create the service."""
        self.store = store
        self.index = index

    async def create_client(self, client_in: schemas.ClientCreate) -> schemas.Client:
        """Create a client with a fresh API key."""
        client = await self.store.create_client(client_in, generate_api_key())
        logger.info(f"Created client '{client.name}' ({client.id})")
        return client

    async def get_client(self, client_id: UUID) -> schemas.Client:
        """Load one client."""
        return await self.store.get_client(client_id)

    async def list_clients(self) -> list[schemas.Client]:
        """Load every client."""
        return await self.store.list_clients()

    async def update_client(
        self, client_id: UUID, client_update: schemas.ClientUpdate
    ) -> schemas.Client:
        """Apply settings changes.

        Changing the folder source invalidates the change cursor, which is
        cleared so the next pass runs a full reconciliation.
        """
        fields = client_update.model_dump(exclude_unset=True)
        if "sources" in fields:
            # Full dumps keep the `kind` discriminator.
            fields["sources"] = [source.model_dump() for source in client_update.sources or []]
            current = await self.store.get_client(client_id)
            old_folder = current.get_source_config(SourceKind.FOLDER)
            new_folder = next(
                (s for s in client_update.sources or [] if s.kind == SourceKind.FOLDER), None
            )
            old_id = old_folder.folder_id if old_folder else None
            new_id = new_folder.folder_id if new_folder else None
            if old_id != new_id:
                fields["sync_cursor"] = None
                self.index.drop(client_id)
                logger.info(f"Folder source changed for client {client_id}, cursor cleared")
        return await self.store.update_client_fields(client_id, fields)

    async def regenerate_api_key(self, client_id: UUID) -> schemas.Client:
        """Issue a new API key, revoking the old one."""
        return await self.store.update_client_fields(client_id, {"api_key": generate_api_key()})

    async def add_tag(self, client_id: UUID, tag_in: schemas.TagCreate) -> schemas.Tag:
        """Add a tag; names are unique per client."""
        return await self.store.add_tag(client_id, tag_in.name)

    async def remove_tag(self, client_id: UUID, tag_id: UUID) -> None:
        """Remove a tag."""
        await self.store.remove_tag(client_id, tag_id)

    async def get_settings(self) -> schemas.SystemSettings:
        """Current system settings (empty defaults when never saved)."""
        return await self.store.get_settings() or schemas.SystemSettings()

    async def save_settings(
        self, settings_in: schemas.SystemSettingsUpdate
    ) -> schemas.SystemSettings:
        """Save system settings."""
        return await self.store.save_settings(settings_in)
