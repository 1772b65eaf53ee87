"""Durable store interface.

The store is the single source of truth for clients, their tags and their
synced items. Every call is expected to be read-after-write consistent.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence
from uuid import UUID

from syncsearch import schemas


class DurableStore(ABC):
    """Persistence operations used by the sync engine and services."""

    @abstractmethod
    async def get_client(self, client_id: UUID) -> schemas.Client:
        """Load a client with its tags and synced items.

        Raises:
            NotFoundException: If the client does not exist.
        """

    @abstractmethod
    async def get_client_by_api_key(self, api_key: str) -> schemas.Client:
        """Load the client owning an API key.

        Raises:
            NotFoundException: If no client owns the key.
        """

    @abstractmethod
    async def list_clients(self) -> list[schemas.Client]:
        """Load every client."""

    @abstractmethod
    async def create_client(self, client_in: schemas.ClientCreate, api_key: str) -> schemas.Client:
        """Create a client with a pre-generated API key."""

    @abstractmethod
    async def update_client_fields(self, client_id: UUID, fields: dict[str, Any]) -> schemas.Client:
        """Apply a partial update to a client's scalar fields."""

    @abstractmethod
    async def upsert_items(
        self, client_id: UUID, items: Sequence[schemas.SyncedItem]
    ) -> list[schemas.SyncedItem]:
        """Insert or update items keyed on (client_id, remote_id)."""

    @abstractmethod
    async def delete_items(self, ids: Sequence[UUID]) -> int:
        """Delete items by store id; returns the number deleted."""

    @abstractmethod
    async def delete_items_by_remote_id(self, client_id: UUID, remote_ids: Sequence[str]) -> int:
        """Delete a client's items by remote id; returns the number deleted."""

    @abstractmethod
    async def search_items(
        self, client_id: UUID, text: str, limit: int = 10
    ) -> list[schemas.SyncedItem]:
        """Case-insensitive text search over item name, summary and content."""

    @abstractmethod
    async def add_tag(self, client_id: UUID, name: str) -> schemas.Tag:
        """Add a tag to a client.

        Raises:
            DuplicateTagError: If the client already has a tag with that name.
        """

    @abstractmethod
    async def remove_tag(self, client_id: UUID, tag_id: UUID) -> None:
        """Remove a tag from a client.

        Raises:
            NotFoundException: If the tag does not belong to the client.
        """

    @abstractmethod
    async def get_settings(self) -> Optional[schemas.SystemSettings]:
        """Load the system settings, if ever saved."""

    @abstractmethod
    async def save_settings(self, settings_in: schemas.SystemSettingsUpdate) -> schemas.SystemSettings:
        """Create or update the system settings."""
