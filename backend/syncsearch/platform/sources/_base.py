"""Base source class."""

from abc import abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, ClassVar, Optional

import httpx

from syncsearch.core.logging import logger
from syncsearch.core.shared_models import SourceKind
from syncsearch.schemas.synced_item import ChangeSet, FetchedContent, RemoteItem


class BaseSource:
    """Base class for all source adapters.

    Adapters translate a remote system into ``RemoteItem`` listings and
    ``FetchedContent``. They raise the domain errors from ``core.exceptions``:
    ``SourceUnavailableError``/``AuthExpiredError`` for listings,
    ``ItemNotFoundError``/``FetchError`` for single items and
    ``CursorInvalidError`` for rejected change cursors.
    """

    _name: ClassVar[str] = ""
    _kind: ClassVar[SourceKind]
    supports_changes: ClassVar[bool] = False
    supports_updates: ClassVar[bool] = False

    def __init__(self):
        """Initialize the base source."""
        self._logger: Optional[Any] = None
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def kind(self) -> SourceKind:
        """The source kind this adapter serves."""
        return self._kind

    @property
    def logger(self):
        """Get the logger for this source, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return logger

    def set_logger(self, logger) -> None:
        """Set a contextual logger for this source."""
        self._logger = logger

    def set_http_client(self, client: httpx.AsyncClient) -> None:
        """Use a shared HTTP client instead of one per call."""
        self._http_client = client

    @asynccontextmanager
    async def http_client(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the shared HTTP client, or a short-lived one."""
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient() as client:
            yield client

    @classmethod
    @abstractmethod
    async def create(cls, config: Any) -> "BaseSource":
        """Create a new source instance from its configuration."""
        pass

    @abstractmethod
    async def list_items(self) -> list[RemoteItem]:
        """List every remote item in scope with its metadata."""
        pass

    @abstractmethod
    async def get_item(self, remote_id: str) -> RemoteItem:
        """Fetch fresh metadata for one remote item."""
        pass

    @abstractmethod
    async def fetch_content(self, remote_id: str, mime_type: Optional[str]) -> FetchedContent:
        """Fetch one item's content."""
        pass

    async def get_start_cursor(self) -> str:
        """Cursor representing "now" for future change-feed calls."""
        raise NotImplementedError(f"{type(self).__name__} has no change feed")

    async def get_changes(self, cursor: str) -> ChangeSet:
        """Report changes since ``cursor``."""
        raise NotImplementedError(f"{type(self).__name__} has no change feed")

    async def update_content(self, remote_id: str, text: str, mime_type: str) -> None:
        """Replace one item's content at the source."""
        raise NotImplementedError(f"{type(self).__name__} does not support content updates")

    async def validate(self) -> bool:
        """Check that the source is reachable with the configured credentials."""
        await self.list_items()
        return True
