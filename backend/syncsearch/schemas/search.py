"""Request and response schemas for queries and sync triggers."""

from typing import Optional

from pydantic import BaseModel, Field

from syncsearch.core.shared_models import SourceKind


class QueryRequest(BaseModel):
    """Natural-language question against a client's indexed summaries."""

    question: str = Field(..., min_length=1)
    image_base64: Optional[str] = Field(
        None, description="Optional image (base64, no data URL prefix) sent with the question"
    )
    image_mime_type: str = "image/png"
    source: Optional[SourceKind] = Field(None, description="Restrict context to one source")
    sync_first: bool = Field(False, description="Run a sync pass before answering")


class QueryResponse(BaseModel):
    """Answer generated from the indexed summaries."""

    answer: str
    context_items: int = Field(..., description="Number of items used as context")


class SyncRequest(BaseModel):
    """Options for a manual sync."""

    source: Optional[SourceKind] = None
    force_full_resync: bool = False


class ItemSearchResult(BaseModel):
    """Text search hit over cached items."""

    remote_id: str
    name: str
    source: SourceKind
    summary: Optional[str] = None
