"""Sync service.

Entry point for every sync trigger: manual, automatic, on-search and single
item. Only one pass per client runs at a time; a manual trigger that collides
with a running pass is rejected, automatic and on-search triggers are skipped.
"""

import base64
import binascii
from typing import Optional
from uuid import UUID

from syncsearch import schemas
from syncsearch.core.exceptions import NotFoundException, SyncInProgressError, SyncSearchException
from syncsearch.core.logging import logger
from syncsearch.core.search_service import SearchService
from syncsearch.core.shared_models import SourceKind, SyncTrigger
from syncsearch.db.store import DurableStore
from syncsearch.platform.sync.orchestrator import ReconciliationEngine
from syncsearch.schemas.sync_events import ProgressCallback
from syncsearch.search.index import SearchIndex

_REJECTING_TRIGGERS = {SyncTrigger.MANUAL, SyncTrigger.SINGLE_ITEM}


class SyncService:
    """Guards and dispatches sync passes, and answers queries."""

    def __init__(
        self,
        store: DurableStore,
        index: Optional[SearchIndex] = None,
        engine: Optional[ReconciliationEngine] = None,
        search_service: Optional[SearchService] = None,
    ):
        """Create the service; collaborators default to ones sharing ``index``."""
        self.store = store
        self.index = index or SearchIndex()
        self.engine = engine or ReconciliationEngine(store, self.index)
        self.search_service = search_service or SearchService(store, self.index)
        self._active: set[UUID] = set()

    def is_syncing(self, client_id: UUID) -> bool:
        """Whether a pass is running for the client."""
        return client_id in self._active

    def _acquire(self, client_id: UUID, trigger: SyncTrigger) -> bool:
        """Mark the client busy; returns False when the trigger should be skipped."""
        if client_id in self._active:
            if trigger in _REJECTING_TRIGGERS:
                raise SyncInProgressError()
            logger.info(f"Skipping {trigger.value} sync for client {client_id}: already syncing")
            return False
        self._active.add(client_id)
        return True

    async def run_sync(
        self,
        client_id: UUID,
        trigger: SyncTrigger = SyncTrigger.MANUAL,
        on_progress: Optional[ProgressCallback] = None,
        source_filter: Optional[SourceKind] = None,
        force_full_resync: bool = False,
    ) -> Optional[schemas.Client]:
        """Run a guarded pass; returns None when the trigger was skipped."""
        if not self._acquire(client_id, trigger):
            return None
        try:
            logger.with_context(client_id=str(client_id), trigger=trigger.value).info(
                "Sync triggered"
            )
            return await self.engine.sync(
                client_id,
                on_progress=on_progress,
                source_filter=source_filter,
                force_full_resync=force_full_resync,
            )
        finally:
            self._active.discard(client_id)

    async def resync_item(
        self, client_id: UUID, item_id: UUID, on_progress: Optional[ProgressCallback] = None
    ) -> schemas.Client:
        """Reprocess one cached item under the client's guard."""
        client = await self.store.get_client(client_id)
        item = next((i for i in client.synced_items if i.id == item_id), None)
        if item is None:
            raise NotFoundException(f"Item {item_id} not found")

        self._acquire(client_id, SyncTrigger.SINGLE_ITEM)
        try:
            return await self.engine.resync_one(client_id, item, on_progress=on_progress)
        finally:
            self._active.discard(client_id)

    async def query(
        self, client: schemas.Client, request: schemas.QueryRequest
    ) -> schemas.QueryResponse:
        """Answer a question, optionally syncing first."""
        if request.sync_first:
            try:
                refreshed = await self.run_sync(
                    client.id, trigger=SyncTrigger.SEARCH, source_filter=request.source
                )
                client = refreshed or client
            except SyncSearchException as e:
                logger.warning(f"On-search sync for client {client.id} failed: {e.message}")

        image = None
        if request.image_base64:
            try:
                data = base64.b64decode(request.image_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError("image_base64 is not valid base64") from e
            image = schemas.FetchedContent(data=data, mime_type=request.image_mime_type)

        answer = await self.search_service.query(client, request.question, image, request.source)
        return schemas.QueryResponse(
            answer=answer, context_items=len(self.index.entries(client.id, request.source))
        )
