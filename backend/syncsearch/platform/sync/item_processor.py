"""Fetch, summarize and store changed items in bounded batches."""

import asyncio
from typing import Optional

from syncsearch.core.config import settings
from syncsearch.core.exceptions import ItemNotFoundError
from syncsearch.core.shared_models import ItemStatus
from syncsearch.db.store import DurableStore
from syncsearch.platform.sync.classifier import ItemDecision
from syncsearch.platform.sync.context import SyncContext
from syncsearch.platform.utils.error_utils import get_error_message
from syncsearch.schemas.synced_item import SyncedItem, merge_item
from syncsearch.search.index import IndexRebuild

SUCCESS_MESSAGE = "Successfully indexed"


class ItemProcessor:
    """Runs the per-item pipeline.

    Items of one batch run concurrently; batches run one after another. A
    failing item is recorded as failed and never affects its siblings. An item
    that vanished between listing and fetching is deleted.
    """

    def __init__(self, store: DurableStore, batch_size: Optional[int] = None):
        """Create the processor."""
        self.store = store
        self.batch_size = batch_size or settings.SYNC_BATCH_SIZE

    async def process(
        self, context: SyncContext, decisions: list[ItemDecision], staging: IndexRebuild
    ) -> None:
        """Process every decision in fixed-size batches."""
        total = len(decisions)
        for start in range(0, total, self.batch_size):
            batch = decisions[start : start + self.batch_size]
            context.logger.debug(
                f"Processing batch {start // self.batch_size + 1} "
                f"({start + 1}-{start + len(batch)} of {total})"
            )
            results = await asyncio.gather(
                *(self._process_item(context, decision, staging) for decision in batch),
                return_exceptions=True,
            )
            for decision, result in zip(batch, results):
                if isinstance(result, BaseException):
                    await self._report_unrecorded_failure(context, decision, result)

    async def _process_item(
        self, context: SyncContext, decision: ItemDecision, staging: IndexRebuild
    ) -> Optional[SyncedItem]:
        remote = decision.remote
        progress = context.progress

        try:
            source = context.sources[remote.source]
            await progress.item_update(
                remote.remote_id, ItemStatus.SYNCING, "Fetching content...", remote.content_kind
            )
            content = await source.fetch_content(remote.remote_id, remote.mime_type)

            await progress.item_update(
                remote.remote_id, ItemStatus.INDEXING, "Summarizing...", remote.content_kind
            )
            summary = await context.summarizer.summarize(content, remote.mime_type, remote.name)
        except asyncio.CancelledError:
            raise
        except ItemNotFoundError:
            context.logger.info(
                f"Item {remote.remote_id} ({remote.name}) no longer exists remotely, deleting it"
            )
            await self.store.delete_items_by_remote_id(context.client_id, [remote.remote_id])
            staging.remove([remote.remote_id])
            context.progress.stats.deleted += 1
            return None
        except Exception as e:
            message = get_error_message(e)
            context.logger.warning(f"Item {remote.remote_id} ({remote.name}) failed: {message}")
            failed = merge_item(
                decision.existing,
                remote,
                context.client_id,
                status=ItemStatus.FAILED,
                status_message=message,
            )
            (stored,) = await self.store.upsert_items(context.client_id, [failed])
            staging.remove([remote.remote_id])
            await progress.item_update(
                remote.remote_id,
                ItemStatus.FAILED,
                message,
                remote.content_kind,
                remote.remote_modified_at,
            )
            return stored

        completed = merge_item(
            decision.existing,
            remote,
            context.client_id,
            status=ItemStatus.COMPLETED,
            status_message=SUCCESS_MESSAGE,
            summary=summary,
            content=content.text,
        )
        (stored,) = await self.store.upsert_items(context.client_id, [completed])
        staging.insert(stored)
        await progress.item_update(
            remote.remote_id,
            ItemStatus.COMPLETED,
            SUCCESS_MESSAGE,
            remote.content_kind,
            remote.remote_modified_at,
        )
        return stored

    async def _report_unrecorded_failure(
        self, context: SyncContext, decision: ItemDecision, error: BaseException
    ) -> None:
        """Report an item whose outcome could not be stored."""
        message = get_error_message(error)
        context.logger.error(
            f"Could not record outcome for item {decision.remote.remote_id}: {message}",
            exc_info=error,
        )
        staging_message = f"Could not save sync result: {message}"
        await context.progress.item_update(
            decision.remote.remote_id,
            ItemStatus.FAILED,
            staging_message,
            decision.remote.content_kind,
            decision.remote.remote_modified_at,
        )
