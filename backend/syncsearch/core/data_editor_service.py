"""Natural-language edits of tabular items.

An edit is a two-step operation. ``generate_plan`` asks the summarization
gateway for a complete edited CSV and returns it for review; nothing changes
yet. ``apply_plan`` writes the confirmed CSV back to the source and resyncs
the item so its summary and the search index follow the new content.
"""

import base64
import binascii
from typing import Awaitable, Callable, Optional
from uuid import UUID

from syncsearch import schemas
from syncsearch.core.exceptions import (
    ConfigurationError,
    FetchError,
    ItemNotFoundError,
    NotFoundException,
    SourceUnavailableError,
    SyncInProgressError,
)
from syncsearch.core.logging import logger
from syncsearch.core.shared_models import ContentKind
from syncsearch.core.sync_service import SyncService
from syncsearch.db.store import DurableStore
from syncsearch.platform.source_factory import SourceFactory
from syncsearch.platform.sources._base import BaseSource
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.platform.summarizers.factory import build_summarizer, resolve_api_key

CSV_MIME_TYPE = "text/csv"


class DataEditorService:
    """Plans and applies AI-assisted edits of CSV documents."""

    def __init__(
        self,
        store: DurableStore,
        sync_service: SyncService,
        source_factory: Callable[..., Awaitable[BaseSource]] = SourceFactory.create,
        summarizer_factory: Callable[..., BaseSummarizer] = build_summarizer,
    ):
        """Create the service."""
        self.store = store
        self.sync_service = sync_service
        self.source_factory = source_factory
        self.summarizer_factory = summarizer_factory

    async def generate_plan(
        self, client_id: UUID, item_id: UUID, request: schemas.EditPlanRequest
    ) -> schemas.EditPlan:
        """Propose an edit of a tabular item without changing anything.

        Raises:
            NotFoundException: Unknown item, or the file is gone at the source.
            ConfigurationError: No summarization key or no source configuration.
            ValueError: The item is not tabular or the image is not valid base64.
        """
        client, item = await self._load_item(client_id, item_id)

        system_settings = await self.store.get_settings()
        api_key = resolve_api_key(system_settings)
        if not api_key:
            raise ConfigurationError("Summarization API key is not configured")

        image = None
        if request.image_base64:
            try:
                data = base64.b64decode(request.image_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError("image_base64 is not valid base64") from e
            image = schemas.FetchedContent(data=data, mime_type=request.image_mime_type)

        source = await self._source_for(client, item)
        csv_text = await self._current_csv(source, item)

        summarizer = self.summarizer_factory(api_key, system_settings)
        plan = await summarizer.generate_edit_plan(
            csv_text, request.instruction, image, request.image_file_name
        )
        logger.with_context(client_id=str(client_id), remote_id=item.remote_id).info(
            f"Generated edit plan for '{item.name}' "
            f"(confirmation required: {plan.requires_confirmation})"
        )
        return plan.model_copy(update={"original_csv": csv_text})

    async def apply_plan(
        self, client_id: UUID, item_id: UUID, request: schemas.ApplyEditRequest
    ) -> schemas.Client:
        """Write a confirmed CSV back to the source and resync the item.

        Raises:
            SyncInProgressError: A pass is running for the client.
            NotFoundException: Unknown item, or the file is gone at the source.
            ValueError: The item is not tabular or its source cannot be written.
        """
        if self.sync_service.is_syncing(client_id):
            raise SyncInProgressError()

        client, item = await self._load_item(client_id, item_id)
        source = await self._source_for(client, item)
        if not source.supports_updates:
            raise ValueError(f"The {item.source.value} source does not support editing content")

        try:
            await source.update_content(item.remote_id, request.updated_csv, CSV_MIME_TYPE)
        except ItemNotFoundError as e:
            raise NotFoundException(f"'{item.name}' no longer exists at the source") from e

        logger.with_context(client_id=str(client_id), remote_id=item.remote_id).info(
            f"Applied edit to '{item.name}', resyncing"
        )
        return await self.sync_service.resync_item(client_id, item_id)

    async def _load_item(
        self, client_id: UUID, item_id: UUID
    ) -> tuple[schemas.Client, schemas.SyncedItem]:
        client = await self.store.get_client(client_id)
        item = next((i for i in client.synced_items if i.id == item_id), None)
        if item is None:
            raise NotFoundException(f"Item {item_id} not found")
        if item.content_kind != ContentKind.TABULAR:
            raise ValueError(f"'{item.name}' is not a tabular item and cannot be edited")
        return client, item

    async def _source_for(self, client: schemas.Client, item: schemas.SyncedItem) -> BaseSource:
        config = client.get_source_config(item.source)
        if config is None:
            raise ConfigurationError(f"Client '{client.name}' has no {item.source.value} source")
        return await self.source_factory(config, logger)

    async def _current_csv(self, source: BaseSource, item: schemas.SyncedItem) -> str:
        """Live content, or the cached copy when the source cannot be read."""
        try:
            content = await source.fetch_content(item.remote_id, item.mime_type)
        except ItemNotFoundError as e:
            raise NotFoundException(f"'{item.name}' no longer exists at the source") from e
        except (FetchError, SourceUnavailableError) as e:
            if not item.content:
                raise
            logger.warning(f"Using cached content of '{item.name}': {e.message}")
            return item.content
        return content.text or ""
