"""Progress events emitted during a sync pass.

A pass emits exactly one ``InitialList`` before any expensive work, followed by
one ``ItemUpdate`` per item status transition. Callers dispatch on the ``type``
tag, e.g. with ``match event: case InitialList(): ... case ItemUpdate(): ...``.
"""

from datetime import datetime
from typing import Annotated, Awaitable, Callable, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from syncsearch.core.datetime_utils import utc_now
from syncsearch.core.shared_models import ContentKind, ItemStatus, SourceKind


class InitialListEntry(BaseModel):
    """One classified item in the initial list."""

    remote_id: str
    name: str
    status: ItemStatus
    content_kind: ContentKind
    source: SourceKind
    remote_modified_at: Optional[str] = None
    status_message: Optional[str] = Field(None, description="Classification reason")


class InitialList(BaseModel):
    """Full post-classification item list for a pass."""

    type: Literal["initial_list"] = "initial_list"
    client_id: UUID = Field(..., description="The client being synced")
    items: list[InitialListEntry] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)


class ItemUpdate(BaseModel):
    """Status transition of a single item."""

    type: Literal["item_update"] = "item_update"
    client_id: UUID = Field(..., description="The client being synced")
    remote_id: str
    status: ItemStatus
    status_message: Optional[str] = None
    content_kind: Optional[ContentKind] = None
    remote_modified_at: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


SyncEvent = Annotated[Union[InitialList, ItemUpdate], Field(discriminator="type")]

ProgressCallback = Callable[[Union[InitialList, ItemUpdate]], Optional[Awaitable[None]]]
