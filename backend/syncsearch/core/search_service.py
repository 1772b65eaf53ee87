"""Query answering over a client's indexed summaries."""

from typing import Optional
from uuid import UUID

from syncsearch.core.config import settings
from syncsearch.core.exceptions import ConfigurationError
from syncsearch.core.logging import logger
from syncsearch.core.shared_models import SourceKind
from syncsearch.db.store import DurableStore
from syncsearch.platform.summarizers.factory import build_summarizer, resolve_api_key
from syncsearch.schemas.client import Client
from syncsearch.schemas.synced_item import FetchedContent, SyncedItem
from syncsearch.search.index import IndexEntry, SearchIndex

NOTHING_INDEXED_MESSAGE = (
    "There is no data indexed for this client yet. Please run a sync and try again."
)


def build_context(entries: list[IndexEntry], max_chars: Optional[int] = None) -> str:
    """Concatenate names and summaries, truncated to ``max_chars``."""
    max_chars = settings.MAX_CONTEXT_CHARS if max_chars is None else max_chars
    context = "\n\n---\n\n".join(
        f"Document: {entry.name}\nSummary: {entry.summary}" for entry in entries
    )
    return context[:max_chars]


class SearchService:
    """Answers questions using only the summaries in the search index."""

    def __init__(
        self,
        store: DurableStore,
        index: SearchIndex,
        summarizer_factory=build_summarizer,
        max_context_chars: Optional[int] = None,
    ):
        """Create the service."""
        self.store = store
        self.index = index
        self.summarizer_factory = summarizer_factory
        self.max_context_chars = max_context_chars

    def ensure_index(self, client: Client) -> None:
        """Rebuild the client's index from its stored items if this process never built it."""
        if not self.index.has_client(client.id):
            count = self.index.rebuild(client.id, client.synced_items)
            logger.info(f"Rebuilt search index for client {client.id} from store ({count} items)")

    async def query(
        self,
        client: Client,
        question: str,
        image: Optional[FetchedContent] = None,
        source: Optional[SourceKind] = None,
    ) -> str:
        """Answer ``question`` from the client's completed items.

        Returns a fixed message without calling the gateway when nothing is indexed.
        """
        self.ensure_index(client)
        entries = self.index.entries(client.id, source)
        if not entries:
            return NOTHING_INDEXED_MESSAGE

        system_settings = await self.store.get_settings()
        api_key = resolve_api_key(system_settings)
        if not api_key:
            raise ConfigurationError("Summarization API key is not configured")

        context = build_context(entries, self.max_context_chars)
        logger.with_context(client_id=str(client.id)).info(
            f"Answering query over {len(entries)} items ({len(context)} context chars)"
        )
        summarizer = self.summarizer_factory(api_key, system_settings)
        return await summarizer.answer(question, context, image)

    async def search_items(self, client_id: UUID, text: str, limit: int = 10) -> list[SyncedItem]:
        """Plain text search over cached items."""
        return await self.store.search_items(client_id, text, limit=limit)
