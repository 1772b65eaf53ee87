"""Client and tag schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from syncsearch.core.shared_models import SourceKind
from syncsearch.schemas.source_config import SourceConfig
from syncsearch.schemas.synced_item import SyncedItem

_SECRET_FIELDS = ("access_token", "refresh_token", "personal_access_token")


def _split_chat_ids(v):
    """Accept chat ids as a list or as one comma-separated string."""
    if v is None:
        return []
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    return [str(part).strip() for part in v if str(part).strip()]


def _check_unique_kinds(sources: list) -> list:
    kinds = [source.kind for source in sources]
    if len(kinds) != len(set(kinds)):
        raise ValueError("At most one source configuration per kind is allowed")
    return sources


class TagBase(BaseModel):
    """Base schema for Tag."""

    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    def strip_name(cls, v: str) -> str:
        """Tag names are compared trimmed."""
        v = v.strip()
        if not v:
            raise ValueError("Tag name must not be blank")
        return v


class TagCreate(TagBase):
    """Schema for creating a Tag."""

    pass


class Tag(TagBase):
    """Schema for Tag."""

    id: UUID
    client_id: UUID

    class Config:
        """Pydantic config for Tag."""

        from_attributes = True


class ClientCreate(BaseModel):
    """Schema for creating a Client."""

    name: str = Field(..., min_length=1, max_length=200)
    sources: list[SourceConfig] = Field(default_factory=list)
    auto_sync_interval_seconds: Optional[int] = Field(
        None, gt=0, description="Seconds between automatic syncs; None means manual only"
    )
    telegram_bot_token: Optional[str] = None
    telegram_allowed_chat_ids: list[str] = Field(default_factory=list)

    @field_validator("telegram_allowed_chat_ids", mode="before")
    def split_chat_ids(cls, v):
        """Chat ids may be given comma-separated."""
        return _split_chat_ids(v)

    @field_validator("sources")
    def validate_sources(cls, v: list) -> list:
        """One configuration per source kind."""
        return _check_unique_kinds(v)


class ClientUpdate(BaseModel):
    """Schema for updating a Client. Only set fields are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sources: Optional[list[SourceConfig]] = None
    auto_sync_interval_seconds: Optional[int] = Field(None, gt=0)
    telegram_bot_token: Optional[str] = None
    telegram_allowed_chat_ids: Optional[list[str]] = None
    sync_cursor: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    @field_validator("telegram_allowed_chat_ids", mode="before")
    def split_chat_ids(cls, v):
        """Chat ids may be given comma-separated."""
        return _split_chat_ids(v)

    @field_validator("sources")
    def validate_sources(cls, v: Optional[list]) -> Optional[list]:
        """One configuration per source kind."""
        return _check_unique_kinds(v) if v is not None else v


class Client(BaseModel):
    """Schema for Client, including its tags and synced items."""

    id: UUID
    name: str
    api_key: str
    sources: list[SourceConfig] = Field(default_factory=list)
    auto_sync_interval_seconds: Optional[int] = None
    telegram_bot_token: Optional[str] = None
    telegram_allowed_chat_ids: list[str] = Field(default_factory=list)
    sync_cursor: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    tags: list[Tag] = Field(default_factory=list)
    synced_items: list[SyncedItem] = Field(default_factory=list)

    class Config:
        """Pydantic config for Client."""

        from_attributes = True

    def get_source_config(self, kind: SourceKind) -> Optional[SourceConfig]:
        """Return the configuration for a source kind, if any."""
        for source in self.sources:
            if source.kind == kind:
                return source
        return None

    def items_for(self, kind: Optional[SourceKind] = None) -> list[SyncedItem]:
        """Synced items, optionally restricted to one source kind."""
        if kind is None:
            return list(self.synced_items)
        return [item for item in self.synced_items if item.source == kind]

    def redacted(self) -> "Client":
        """Copy of the client with source credentials masked, for API responses."""
        sources = [
            source.model_copy(
                update={
                    field: "***"
                    for field in _SECRET_FIELDS
                    if getattr(source, field, None) is not None
                }
            )
            for source in self.sources
        ]
        update: dict = {"sources": sources}
        if self.telegram_bot_token:
            update["telegram_bot_token"] = "***"
        return self.model_copy(update=update)
