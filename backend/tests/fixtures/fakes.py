"""In-memory stand-ins for the store, source adapters and summarizer."""

import uuid
from typing import Any, Optional, Sequence
from uuid import UUID

from syncsearch import schemas
from syncsearch.core.datetime_utils import utc_now_naive
from syncsearch.core.exceptions import (
    CursorInvalidError,
    DuplicateTagError,
    FetchError,
    GenerationError,
    ItemNotFoundError,
    NotFoundException,
    SourceUnavailableError,
)
from syncsearch.core.shared_models import ContentKind, SourceKind
from syncsearch.db.store import DurableStore
from syncsearch.platform.sources._base import BaseSource
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.schemas.synced_item import ChangeSet, FetchedContent, RemoteItem


class FakeStore(DurableStore):
    """Durable store kept in dictionaries."""

    def __init__(self, api_key: Optional[str] = "sk-test-summarizer"):
        self.clients: dict[UUID, schemas.Client] = {}
        self.items: dict[UUID, schemas.SyncedItem] = {}
        self.tags: dict[UUID, schemas.Tag] = {}
        self.settings: Optional[schemas.SystemSettings] = (
            schemas.SystemSettings(summarization_api_key=api_key) if api_key else None
        )
        self.upsert_calls = 0
        self.fail_upserts_for: set[str] = set()

    def _assemble(self, client: schemas.Client) -> schemas.Client:
        items = sorted(
            (item for item in self.items.values() if item.client_id == client.id),
            key=lambda item: item.name,
        )
        tags = [tag for tag in self.tags.values() if tag.client_id == client.id]
        return client.model_copy(update={"synced_items": items, "tags": tags})

    async def get_client(self, client_id: UUID) -> schemas.Client:
        if client_id not in self.clients:
            raise NotFoundException(f"Client {client_id} not found")
        return self._assemble(self.clients[client_id])

    async def get_client_by_api_key(self, api_key: str) -> schemas.Client:
        for client in self.clients.values():
            if client.api_key == api_key:
                return self._assemble(client)
        raise NotFoundException("No client for this API key")

    async def list_clients(self) -> list[schemas.Client]:
        return [self._assemble(client) for client in self.clients.values()]

    async def create_client(self, client_in: schemas.ClientCreate, api_key: str) -> schemas.Client:
        client = schemas.Client(
            id=uuid.uuid4(),
            name=client_in.name,
            api_key=api_key,
            sources=client_in.sources,
            auto_sync_interval_seconds=client_in.auto_sync_interval_seconds,
            telegram_bot_token=client_in.telegram_bot_token,
            telegram_allowed_chat_ids=client_in.telegram_allowed_chat_ids,
            created_at=utc_now_naive(),
        )
        self.clients[client.id] = client
        return self._assemble(client)

    async def update_client_fields(self, client_id: UUID, fields: dict[str, Any]) -> schemas.Client:
        if client_id not in self.clients:
            raise NotFoundException(f"Client {client_id} not found")
        current = self.clients[client_id].model_dump(exclude={"synced_items", "tags"})
        self.clients[client_id] = schemas.Client.model_validate({**current, **fields})
        return self._assemble(self.clients[client_id])

    async def upsert_items(
        self, client_id: UUID, items: Sequence[schemas.SyncedItem]
    ) -> list[schemas.SyncedItem]:
        self.upsert_calls += 1
        stored = []
        for item in items:
            if item.remote_id in self.fail_upserts_for:
                raise RuntimeError("database is locked")
            existing = next(
                (
                    i
                    for i in self.items.values()
                    if i.client_id == client_id and i.remote_id == item.remote_id
                ),
                None,
            )
            item_id = existing.id if existing else (item.id or uuid.uuid4())
            saved = item.model_copy(update={"id": item_id, "client_id": client_id})
            self.items[item_id] = saved
            stored.append(saved)
        return stored

    async def delete_items(self, ids: Sequence[UUID]) -> int:
        deleted = 0
        for item_id in ids:
            if self.items.pop(item_id, None) is not None:
                deleted += 1
        return deleted

    async def delete_items_by_remote_id(self, client_id: UUID, remote_ids: Sequence[str]) -> int:
        ids = [
            item.id
            for item in self.items.values()
            if item.client_id == client_id and item.remote_id in remote_ids
        ]
        return await self.delete_items(ids)

    async def search_items(
        self, client_id: UUID, text: str, limit: int = 10
    ) -> list[schemas.SyncedItem]:
        needle = text.lower()
        return [
            item
            for item in self.items.values()
            if item.client_id == client_id
            and any(needle in (value or "").lower() for value in (item.name, item.summary))
        ][:limit]

    async def add_tag(self, client_id: UUID, name: str) -> schemas.Tag:
        await self.get_client(client_id)
        if any(t.client_id == client_id and t.name.lower() == name.lower() for t in self.tags.values()):
            raise DuplicateTagError(name)
        tag = schemas.Tag(id=uuid.uuid4(), client_id=client_id, name=name)
        self.tags[tag.id] = tag
        return tag

    async def remove_tag(self, client_id: UUID, tag_id: UUID) -> None:
        tag = self.tags.get(tag_id)
        if tag is None or tag.client_id != client_id:
            raise NotFoundException(f"Tag {tag_id} not found")
        del self.tags[tag_id]

    async def get_settings(self) -> Optional[schemas.SystemSettings]:
        return self.settings

    async def save_settings(self, settings_in: schemas.SystemSettingsUpdate) -> schemas.SystemSettings:
        self.settings = schemas.SystemSettings(**settings_in.model_dump())
        return self.settings

    def items_for(self, client_id: UUID) -> dict[str, schemas.SyncedItem]:
        """Stored items of a client keyed by remote id."""
        return {i.remote_id: i for i in self.items.values() if i.client_id == client_id}


class FakeSource(BaseSource):
    """Source adapter serving items from memory.

    ``items`` maps remote id to metadata, ``contents`` to text. Remote ids in
    ``fail_fetch`` raise FetchError; setting ``unavailable`` makes listing fail.
    """

    def __init__(self, kind: SourceKind = SourceKind.FOLDER, supports_changes: bool = False):
        super().__init__()
        self._kind = kind
        self.supports_changes = supports_changes
        self.items: dict[str, RemoteItem] = {}
        self.contents: dict[str, str] = {}
        self.fail_fetch: set[str] = set()
        self.unavailable = False
        self.cursor_invalid = False
        self.cursor = "cursor-1"
        self.changes: Optional[ChangeSet] = None
        self.fetch_calls: list[str] = []
        self.list_calls = 0
        self.supports_updates = kind == SourceKind.FOLDER
        self.updates: list[tuple[str, str, str]] = []

    def add(
        self,
        remote_id: str,
        name: str,
        modified: str = "2024-01-01T00:00:00.000Z",
        text: Optional[str] = None,
        content_kind: Optional[ContentKind] = None,
        mime_type: str = "text/plain",
    ) -> RemoteItem:
        if content_kind is None:
            content_kind = (
                ContentKind.DOCUMENT if self._kind == SourceKind.FOLDER else ContentKind.RECORD
            )
        item = RemoteItem(
            remote_id=remote_id,
            name=name,
            source=self._kind,
            content_kind=content_kind,
            mime_type=mime_type,
            remote_modified_at=modified,
        )
        self.items[remote_id] = item
        self.contents[remote_id] = text or f"Content of {name}"
        return item

    @classmethod
    async def create(cls, config: Any) -> "FakeSource":
        return cls()

    async def list_items(self) -> list[RemoteItem]:
        self.list_calls += 1
        if self.unavailable:
            raise SourceUnavailableError(f"{self._kind.value} listing failed")
        return list(self.items.values())

    async def get_item(self, remote_id: str) -> RemoteItem:
        if remote_id not in self.items:
            raise ItemNotFoundError(remote_id)
        return self.items[remote_id]

    async def fetch_content(self, remote_id: str, mime_type: Optional[str]) -> FetchedContent:
        self.fetch_calls.append(remote_id)
        if remote_id in self.fail_fetch:
            raise FetchError(f"Could not download {remote_id}")
        if remote_id not in self.contents:
            raise ItemNotFoundError(remote_id)
        return FetchedContent(text=self.contents[remote_id], mime_type=mime_type)

    async def update_content(self, remote_id: str, text: str, mime_type: str) -> None:
        if remote_id not in self.items:
            raise ItemNotFoundError(remote_id)
        self.updates.append((remote_id, text, mime_type))
        self.contents[remote_id] = text

    async def get_start_cursor(self) -> str:
        return self.cursor

    async def get_changes(self, cursor: str) -> ChangeSet:
        if self.cursor_invalid:
            raise CursorInvalidError("Page token expired")
        return self.changes or ChangeSet(new_cursor=cursor)


class FakeSummarizer(BaseSummarizer):
    """Summarizer that records calls; names in ``fail_names`` fail."""

    def __init__(self):
        self.summarize_calls: list[Optional[str]] = []
        self.answer_calls: list[tuple[str, str]] = []
        self.fail_names: set[str] = set()
        self.edit_calls: list[dict[str, Any]] = []

    async def summarize(
        self,
        content: FetchedContent,
        content_type: Optional[str] = None,
        name: Optional[str] = None,
        image: Optional[FetchedContent] = None,
    ) -> str:
        self.summarize_calls.append(name)
        if name in self.fail_names:
            raise GenerationError(f"Model refused {name}")
        return f"Summary of {name}"

    async def answer(
        self, question: str, context: str, image: Optional[FetchedContent] = None
    ) -> str:
        self.answer_calls.append((question, context))
        return "42"

    async def generate_edit_plan(
        self,
        csv_text: str,
        instruction: str,
        image: Optional[FetchedContent] = None,
        image_file_name: Optional[str] = None,
    ) -> schemas.EditPlan:
        self.edit_calls.append(
            {
                "csv_text": csv_text,
                "instruction": instruction,
                "image": image,
                "image_file_name": image_file_name,
            }
        )
        return schemas.EditPlan(
            explanation=f"Applied: {instruction}",
            updated_csv=csv_text.replace("old", "new"),
            requires_confirmation="delete" in instruction.lower(),
        )
