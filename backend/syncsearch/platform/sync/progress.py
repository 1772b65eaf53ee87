"""Progress reporting for sync passes."""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from syncsearch.core.shared_models import ContentKind, ItemStatus
from syncsearch.schemas.sync_events import (
    InitialList,
    InitialListEntry,
    ItemUpdate,
    ProgressCallback,
)


@dataclass
class SyncStats:
    """Counters for one pass."""

    listed: int = 0
    kept: int = 0
    deleted: int = 0
    completed: int = 0
    failed: int = 0


class SyncProgress:
    """Emits progress events to the caller and keeps pass counters.

    Callback failures are logged and never interrupt the pass.
    """

    def __init__(self, client_id: UUID, callback: Optional[ProgressCallback], logger):
        """Create the reporter for one pass."""
        self.client_id = client_id
        self._callback = callback
        self.logger = logger
        self.stats = SyncStats()
        self._lock = asyncio.Lock()

    async def _emit(self, event: Union[InitialList, ItemUpdate]) -> None:
        if self._callback is None:
            return
        try:
            result = self._callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.warning(f"Progress callback failed for {event.type}: {e}", exc_info=True)

    async def initial_list(self, entries: list[InitialListEntry]) -> None:
        """Emit the post-classification item list."""
        self.stats.listed = len(entries)
        await self._emit(InitialList(client_id=self.client_id, items=entries))

    async def item_update(
        self,
        remote_id: str,
        status: ItemStatus,
        status_message: Optional[str] = None,
        content_kind: Optional[ContentKind] = None,
        remote_modified_at: Optional[str] = None,
    ) -> None:
        """Emit one item status transition and count final outcomes."""
        if status in (ItemStatus.COMPLETED, ItemStatus.FAILED):
            async with self._lock:
                if status == ItemStatus.COMPLETED:
                    self.stats.completed += 1
                else:
                    self.stats.failed += 1
        await self._emit(
            ItemUpdate(
                client_id=self.client_id,
                remote_id=remote_id,
                status=status,
                status_message=status_message,
                content_kind=content_kind,
                remote_modified_at=remote_modified_at,
            )
        )
