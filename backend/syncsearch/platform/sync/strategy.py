"""Incremental vs. full reconciliation.

Sources with a change feed are reconciled incrementally once a baseline cursor
exists. A rejected cursor is cleared and the same pass falls back to a full
listing, which also records a fresh cursor.
"""

from dataclasses import dataclass, field
from typing import Optional

from syncsearch.core.exceptions import CursorInvalidError
from syncsearch.core.shared_models import SourceKind, SyncMode
from syncsearch.db.store import DurableStore
from syncsearch.platform.sources._base import BaseSource
from syncsearch.schemas.client import Client
from syncsearch.schemas.synced_item import RemoteItem


@dataclass
class SourcePlan:
    """What one source contributes to a pass.

    For ``FULL`` plans ``items`` is the complete listing; for ``INCREMENTAL``
    plans it holds only the changed items and ``removed_ids`` the removals.
    """

    kind: SourceKind
    source: BaseSource
    mode: SyncMode
    items: list[RemoteItem] = field(default_factory=list)
    removed_ids: list[str] = field(default_factory=list)
    new_cursor: Optional[str] = None
    cursor_reset: bool = False


class SyncStrategySelector:
    """Chooses and runs the listing strategy for a source."""

    def __init__(self, store: DurableStore):
        """Create the selector.

        Args:
            store: Store used to clear rejected cursors
        """
        self.store = store

    async def plan(
        self, client: Client, source: BaseSource, force_full_resync: bool, logger
    ) -> SourcePlan:
        """Build the plan for one source.

        Raises:
            SourceUnavailableError: If the source cannot be listed.
        """
        if not source.supports_changes:
            return await self._full(source, record_cursor=False)

        if force_full_resync or not client.sync_cursor:
            reason = "forced" if force_full_resync else "no stored cursor"
            logger.info(f"Full reconciliation for {source.kind.value} source ({reason})")
            return await self._full(source, record_cursor=True)

        try:
            changes = await source.get_changes(client.sync_cursor)
        except CursorInvalidError as e:
            logger.warning(
                f"Stored cursor rejected ({e.message}); clearing it and falling back to a full sync"
            )
            await self.store.update_client_fields(client.id, {"sync_cursor": None})
            plan = await self._full(source, record_cursor=True)
            plan.cursor_reset = True
            return plan

        logger.info(
            f"Incremental reconciliation for {source.kind.value} source: "
            f"{len(changes.changed)} changed, {len(changes.removed_ids)} removed"
        )
        return SourcePlan(
            kind=source.kind,
            source=source,
            mode=SyncMode.INCREMENTAL,
            items=changes.changed,
            removed_ids=changes.removed_ids,
            new_cursor=changes.new_cursor,
        )

    async def _full(self, source: BaseSource, record_cursor: bool) -> SourcePlan:
        # The cursor is taken before listing so changes made during the listing
        # are replayed by the next incremental pass.
        new_cursor = await source.get_start_cursor() if record_cursor else None
        items = await source.list_items()
        return SourcePlan(
            kind=source.kind,
            source=source,
            mode=SyncMode.FULL,
            items=items,
            new_cursor=new_cursor,
        )
