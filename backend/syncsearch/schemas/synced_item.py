"""Synced item schemas and the cached/fresh merge rules."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from syncsearch.core.datetime_utils import utc_now_naive
from syncsearch.core.shared_models import ContentKind, ItemStatus, SourceKind


def _marker_to_str(v):
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.isoformat()
    return str(v)


class RemoteItem(BaseModel):
    """Fresh metadata for one remote item, as reported by a source listing."""

    remote_id: str
    name: str
    source: SourceKind
    content_kind: ContentKind = ContentKind.DOCUMENT
    mime_type: Optional[str] = Field(None, description="Content type hint for fetching")
    remote_modified_at: Optional[str] = Field(
        None, description="Source-specific modification marker"
    )

    @field_validator("remote_modified_at", mode="before")
    def normalize_marker(cls, v):
        """Store modification markers as strings."""
        return _marker_to_str(v)


class ChangeSet(BaseModel):
    """Changes reported by a source's change feed since a cursor."""

    changed: list[RemoteItem] = Field(default_factory=list)
    removed_ids: list[str] = Field(default_factory=list)
    new_cursor: str


class FetchedContent(BaseModel):
    """Content of one remote item: text, or raw bytes for binary content."""

    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: Optional[str] = None

    @model_validator(mode="after")
    def check_payload(self) -> "FetchedContent":
        """Exactly one of text or data must be set."""
        if (self.text is None) == (self.data is None):
            raise ValueError("FetchedContent needs exactly one of text or data")
        return self

    @property
    def is_binary(self) -> bool:
        """Whether the content is raw bytes."""
        return self.data is not None


class SyncedItem(BaseModel):
    """Durable record of one remote item seen for a client."""

    id: Optional[UUID] = Field(None, description="Store identity; None until first upsert")
    client_id: UUID
    remote_id: str
    name: str
    source: SourceKind
    content_kind: ContentKind = ContentKind.DOCUMENT
    mime_type: Optional[str] = None
    status: ItemStatus = ItemStatus.IDLE
    status_message: Optional[str] = None
    remote_modified_at: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    summary: Optional[str] = None
    content: Optional[str] = Field(None, description="Cached raw text content")

    @field_validator("remote_modified_at", mode="before")
    def normalize_marker(cls, v):
        """Store modification markers as strings."""
        return _marker_to_str(v)

    @model_validator(mode="after")
    def check_summary_matches_status(self) -> "SyncedItem":
        """Completed items carry a summary; failed items never do."""
        has_summary = bool(self.summary and self.summary.strip())
        if self.status == ItemStatus.COMPLETED and not has_summary:
            raise ValueError("A completed item must have a non-empty summary")
        if self.status == ItemStatus.FAILED and has_summary:
            raise ValueError("A failed item must not carry a summary")
        return self

    class Config:
        """Pydantic config for SyncedItem."""

        from_attributes = True


def merge_item(
    existing: Optional[SyncedItem],
    fresh: RemoteItem,
    client_id: UUID,
    *,
    status: Optional[ItemStatus] = None,
    status_message: Optional[str] = None,
    summary: Optional[str] = None,
    content: Optional[str] = None,
    synced_at: Optional[datetime] = None,
) -> SyncedItem:
    """Combine a cached record with fresh remote metadata and a processing outcome.

    Field precedence:

    * ``id`` always comes from the existing record (None for a new item).
    * ``remote_id``, ``name``, ``source``, ``content_kind``, ``mime_type`` and
      ``remote_modified_at`` always come from the fresh metadata.
    * With no ``status`` the item is unchanged: status, message, summary, content
      and ``last_synced_at`` are taken from the existing record, which is required.
    * ``COMPLETED`` takes the given summary and content (content falls back to the
      existing cache) and stamps ``last_synced_at``.
    * ``FAILED`` drops summary and content and stamps ``last_synced_at``.
    * Any other status keeps the existing summary and content.
    """
    base = {
        "id": existing.id if existing else None,
        "client_id": client_id,
        "remote_id": fresh.remote_id,
        "name": fresh.name,
        "source": fresh.source,
        "content_kind": fresh.content_kind,
        "mime_type": fresh.mime_type,
        "remote_modified_at": fresh.remote_modified_at,
    }

    if status is None:
        if existing is None:
            raise ValueError("An unchanged merge needs an existing record")
        return SyncedItem(
            **base,
            status=existing.status,
            status_message=existing.status_message,
            last_synced_at=existing.last_synced_at,
            summary=existing.summary,
            content=existing.content,
        )

    if status == ItemStatus.COMPLETED:
        return SyncedItem(
            **base,
            status=status,
            status_message=status_message,
            last_synced_at=synced_at or utc_now_naive(),
            summary=summary,
            content=content if content is not None else (existing.content if existing else None),
        )

    if status == ItemStatus.FAILED:
        return SyncedItem(
            **base,
            status=status,
            status_message=status_message,
            last_synced_at=synced_at or utc_now_naive(),
        )

    return SyncedItem(
        **base,
        status=status,
        status_message=status_message,
        last_synced_at=existing.last_synced_at if existing else None,
        summary=existing.summary if existing else None,
        content=existing.content if existing else None,
    )


def to_remote_item(item: SyncedItem) -> RemoteItem:
    """Project a cached record back onto the metadata shape a listing returns."""
    return RemoteItem(
        remote_id=item.remote_id,
        name=item.name,
        source=item.source,
        content_kind=item.content_kind,
        mime_type=item.mime_type,
        remote_modified_at=item.remote_modified_at,
    )
