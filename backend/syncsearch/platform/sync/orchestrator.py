"""Reconciliation engine.

One pass for one client:

1. Load the client and settings; fail fast on missing configuration.
2. Plan each source in scope (full listing or change feed). A source that
   cannot be listed fails on its own; the other sources still run.
3. Start a fresh index generation for the client.
4. Look up cached items by remote id, scoped to the planned sources.
5. Delete cached items that disappeared remotely.
6. Classify every listed item; unchanged ones go straight back into the index.
7. Report the classified list.
8. Fetch, summarize and store the rest in batches.
9. Publish the index, store the new cursor and return the reloaded client.
"""

from typing import Awaitable, Callable, Optional, Union
from uuid import UUID

from syncsearch.core.config import settings
from syncsearch.core.datetime_utils import utc_now_naive
from syncsearch.core.exceptions import (
    ConfigurationError,
    ItemNotFoundError,
    NotFoundException,
    SourceUnavailableError,
)
from syncsearch.core.logging import LoggerConfigurator
from syncsearch.core.shared_models import ItemStatus, SourceKind, SyncMode
from syncsearch.db.store import DurableStore
from syncsearch.platform.source_factory import SourceFactory
from syncsearch.platform.sources._base import BaseSource
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.platform.summarizers.factory import build_summarizer, resolve_api_key
from syncsearch.platform.sync.classifier import (
    REASON_RETRY,
    ItemDecision,
    classify_item,
)
from syncsearch.platform.sync.context import SyncContext
from syncsearch.platform.sync.item_processor import SUCCESS_MESSAGE, ItemProcessor
from syncsearch.platform.sync.progress import SyncProgress
from syncsearch.platform.sync.strategy import SourcePlan, SyncStrategySelector
from syncsearch.platform.utils.error_utils import get_error_message
from syncsearch.schemas.client import Client
from syncsearch.schemas.source_config import SourceConfig
from syncsearch.schemas.sync_events import InitialListEntry, ProgressCallback
from syncsearch.schemas.synced_item import SyncedItem, merge_item, to_remote_item
from syncsearch.schemas.system_settings import SystemSettings
from syncsearch.search.index import IndexRebuild, SearchIndex

SourceFactoryFn = Callable[[SourceConfig, object], Awaitable[BaseSource]]
SummarizerFactoryFn = Callable[[str, Optional[SystemSettings]], BaseSummarizer]


class ReconciliationEngine:
    """Keeps a client's cached items and search index in line with its sources.

    The engine holds no per-client state and may be invoked concurrently for
    different clients. Callers serialize passes for the same client.
    """

    def __init__(
        self,
        store: DurableStore,
        index: SearchIndex,
        source_factory: SourceFactoryFn = SourceFactory.create,
        summarizer_factory: SummarizerFactoryFn = build_summarizer,
        batch_size: Optional[int] = None,
        tolerance_ms: Optional[int] = None,
    ):
        """Create the engine.

        Args:
            store: Durable store, the source of truth
            index: Search index rebuilt by every pass
            source_factory: Creates adapters from source configurations
            summarizer_factory: Creates the summarization gateway from an API key
            batch_size: Items processed concurrently (defaults to settings.SYNC_BATCH_SIZE)
            tolerance_ms: Marker tolerance (defaults to settings.MARKER_TOLERANCE_MS)
        """
        self.store = store
        self.index = index
        self.source_factory = source_factory
        self.summarizer_factory = summarizer_factory
        self.tolerance_ms = settings.MARKER_TOLERANCE_MS if tolerance_ms is None else tolerance_ms
        self.strategy = SyncStrategySelector(store)
        self.processor = ItemProcessor(store, batch_size)

    # ------------------------------------------------------------------------------------
    # Full / incremental pass
    # ------------------------------------------------------------------------------------

    async def sync(
        self,
        client_id: UUID,
        on_progress: Optional[ProgressCallback] = None,
        source_filter: Optional[SourceKind] = None,
        force_full_resync: bool = False,
    ) -> Client:
        """Run one reconciliation pass and return the reloaded client.

        Raises:
            ConfigurationError: Missing client, credentials or sources.
            SourceUnavailableError: A source could not be listed. Other sources
                are still reconciled before the error is raised.
        """
        context = await self._prepare(client_id, on_progress, source_filter, force_full_resync)
        logger = context.logger
        logger.info(
            f"Starting sync for client '{context.client.name}' "
            f"(sources: {', '.join(sorted(k.value for k in context.kinds_in_scope))}, "
            f"force={force_full_resync})"
        )

        plans, failures = await self._plan_sources(context)
        if not plans:
            raise self._combine_failures(failures)

        planned_kinds = {plan.kind for plan in plans}
        staging = self.index.begin_rebuild(client_id)

        # Items of sources not reconciled in this pass are carried over untouched.
        staging.restore(
            item for item in context.client.synced_items if item.source not in planned_kinds
        )

        cached = {
            item.remote_id: item
            for item in context.client.synced_items
            if item.source in planned_kinds
        }

        await self._delete_stale(context, plans, cached)

        decisions = self._classify(context, plans, cached)
        to_process = [decision for decision in decisions if decision.reprocess]
        await self._restore_unchanged(context, decisions, staging)

        await context.progress.initial_list(
            [
                InitialListEntry(
                    remote_id=decision.remote.remote_id,
                    name=decision.remote.name,
                    status=(
                        ItemStatus.IDLE if decision.reprocess else decision.existing.status
                    ),
                    content_kind=decision.remote.content_kind,
                    source=decision.remote.source,
                    remote_modified_at=decision.remote.remote_modified_at,
                    status_message=decision.reason,
                )
                for decision in decisions
            ]
        )

        logger.info(
            f"Classified {len(decisions)} items: {len(to_process)} to process, "
            f"{len(decisions) - len(to_process)} unchanged"
        )
        await self.processor.process(context, to_process, staging)

        indexed = staging.commit()
        await self._finish(context, plans)

        stats = context.progress.stats
        logger.info(
            f"Sync finished for client '{context.client.name}': {stats.completed} completed, "
            f"{stats.failed} failed, {stats.kept} unchanged, {stats.deleted} deleted, "
            f"{indexed} indexed"
        )

        if failures:
            raise self._combine_failures(failures)
        return await self.store.get_client(client_id)

    async def _prepare(
        self,
        client_id: UUID,
        on_progress: Optional[ProgressCallback],
        source_filter: Optional[SourceKind],
        force_full_resync: bool,
    ) -> SyncContext:
        """Load everything a pass needs, failing before any mutation."""
        try:
            client = await self.store.get_client(client_id)
        except NotFoundException as e:
            raise ConfigurationError(f"Client {client_id} does not exist") from e

        system_settings = await self.store.get_settings()
        api_key = resolve_api_key(system_settings)
        if not api_key:
            raise ConfigurationError("Summarization API key is not configured")

        source_configs = [
            config
            for config in client.sources
            if source_filter is None or config.kind == source_filter
        ]
        if not source_configs:
            if source_filter is not None:
                raise ConfigurationError(
                    f"Client '{client.name}' has no {SourceKind(source_filter).value} source"
                )
            raise ConfigurationError(f"Client '{client.name}' has no source configured")

        missing = [config.kind for config in source_configs if not config.has_credentials()]
        if missing:
            raise ConfigurationError(
                f"Missing credentials for source(s): {', '.join(sorted(missing))}"
            )

        logger = LoggerConfigurator.configure_logger(
            "syncsearch.sync",
            dimensions={
                "client_id": str(client.id),
                "client_name": client.name,
                "force_full_resync": force_full_resync,
            },
        )
        return SyncContext(
            client=client,
            system_settings=system_settings,
            source_configs=source_configs,
            summarizer=self.summarizer_factory(api_key, system_settings),
            progress=SyncProgress(client.id, on_progress, logger),
            logger=logger,
            force_full_resync=force_full_resync,
            source_filter=source_filter,
        )

    async def _plan_sources(
        self, context: SyncContext
    ) -> tuple[list[SourcePlan], dict[SourceKind, Exception]]:
        """Create adapters and list every source; failures are kept per source."""
        plans: list[SourcePlan] = []
        failures: dict[SourceKind, Exception] = {}

        for config in context.source_configs:
            kind = SourceKind(config.kind)
            try:
                source = await self.source_factory(config, context.logger)
                context.sources[kind] = source
                plan = await self.strategy.plan(
                    context.client, source, context.force_full_resync, context.logger
                )
            except (SourceUnavailableError, ConfigurationError) as e:
                context.logger.error(f"Listing {kind.value} source failed: {e.message}")
                failures[kind] = e
                continue
            context.logger.with_context(sync_mode=plan.mode.value).info(
                f"Planned {kind.value} source: {len(plan.items)} item(s) listed"
            )
            if plan.cursor_reset:
                context.client = context.client.model_copy(update={"sync_cursor": None})
            plans.append(plan)

        return plans, failures

    async def _delete_stale(
        self, context: SyncContext, plans: list[SourcePlan], cached: dict[str, SyncedItem]
    ) -> None:
        """Delete cached items that no longer exist remotely, before any processing."""
        stale: list[SyncedItem] = []
        for plan in plans:
            if plan.mode == SyncMode.FULL:
                listed = {item.remote_id for item in plan.items}
                stale.extend(
                    item
                    for item in cached.values()
                    if item.source == plan.kind and item.remote_id not in listed
                )
            else:
                stale.extend(
                    cached[remote_id]
                    for remote_id in plan.removed_ids
                    if remote_id in cached and cached[remote_id].source == plan.kind
                )

        if not stale:
            return

        ids = [item.id for item in stale if item.id is not None]
        await self.store.delete_items(ids)
        for item in stale:
            cached.pop(item.remote_id, None)
        context.progress.stats.deleted = len(stale)
        context.logger.info(f"Deleted {len(stale)} items no longer present at the source")

    def _classify(
        self, context: SyncContext, plans: list[SourcePlan], cached: dict[str, SyncedItem]
    ) -> list[ItemDecision]:
        """Classify listed items; incremental plans also carry their untouched items."""
        decisions: list[ItemDecision] = []
        seen: set[str] = set()

        for plan in plans:
            for remote in plan.items:
                if remote.remote_id in seen:
                    continue
                seen.add(remote.remote_id)
                decisions.append(
                    classify_item(
                        cached.get(remote.remote_id),
                        remote,
                        context.force_full_resync,
                        self.tolerance_ms,
                    )
                )

            if plan.mode != SyncMode.INCREMENTAL:
                continue
            for item in cached.values():
                if item.source != plan.kind or item.remote_id in seen:
                    continue
                seen.add(item.remote_id)
                if item.status == ItemStatus.FAILED:
                    decisions.append(ItemDecision(to_remote_item(item), item, True, REASON_RETRY))
                else:
                    decisions.append(
                        classify_item(item, to_remote_item(item), False, self.tolerance_ms)
                    )

        return decisions

    async def _restore_unchanged(
        self, context: SyncContext, decisions: list[ItemDecision], staging: IndexRebuild
    ) -> None:
        """Put unchanged items back into the index without any network or AI call.

        Renames are the only metadata that can change without a new marker; those
        records are refreshed in the store.
        """
        renamed: list[SyncedItem] = []
        for decision in decisions:
            if decision.reprocess:
                continue
            merged = merge_item(decision.existing, decision.remote, context.client_id)
            if merged.name != decision.existing.name:
                renamed.append(merged)
            staging.insert(merged)
        context.progress.stats.kept = sum(1 for d in decisions if not d.reprocess)

        if renamed:
            await self.store.upsert_items(context.client_id, renamed)

    async def _finish(self, context: SyncContext, plans: list[SourcePlan]) -> None:
        """Store the new cursor and the sync time.

        The cursor belongs to the folder that was planned. If the folder was
        replaced while the pass ran, the stored cursor stays cleared so the next
        pass lists the new folder in full.
        """
        fields: dict = {"last_synced_at": utc_now_naive()}
        new_cursor = next((plan.new_cursor for plan in plans if plan.new_cursor), None)
        if new_cursor:
            current = await self.store.get_client(context.client_id)
            if _folder_id(current) == _folder_id(context.client):
                fields["sync_cursor"] = new_cursor
            else:
                context.logger.warning(
                    "Folder source changed during the pass; new cursor discarded"
                )
        await self.store.update_client_fields(context.client_id, fields)

    @staticmethod
    def _combine_failures(failures: dict[SourceKind, Exception]) -> Exception:
        """The error surfaced for sources that could not be listed."""
        if len(failures) == 1:
            return next(iter(failures.values()))
        details = "; ".join(
            f"{kind.value}: {get_error_message(error)}" for kind, error in failures.items()
        )
        return SourceUnavailableError(f"Sources could not be synced ({details})")

    # ------------------------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------------------------

    async def resync_one(
        self,
        client_id: UUID,
        item: Union[SyncedItem, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Client:
        """Reprocess one item regardless of its markers and return the reloaded client.

        A remote item that no longer exists is deleted from the store instead of
        being marked failed.

        Raises:
            ConfigurationError: Missing client, credentials or source.
            NotFoundException: The item is not cached for this client.
        """
        remote_id = item.remote_id if isinstance(item, SyncedItem) else item
        client = await self._load_client(client_id)
        existing = next((i for i in client.synced_items if i.remote_id == remote_id), None)
        if existing is None:
            raise NotFoundException(f"Item {remote_id} not found for client {client_id}")

        context = await self._prepare(client_id, on_progress, existing.source, True)
        logger = context.logger.with_context(remote_id=remote_id)
        progress = context.progress
        fresh = to_remote_item(existing)

        try:
            source = await self.source_factory(context.source_configs[0], logger)
            fresh = await source.get_item(remote_id)
            await progress.item_update(
                remote_id, ItemStatus.SYNCING, "Fetching content...", fresh.content_kind
            )
            content = await source.fetch_content(remote_id, fresh.mime_type)
            await progress.item_update(
                remote_id, ItemStatus.INDEXING, "Summarizing...", fresh.content_kind
            )
            summary = await context.summarizer.summarize(content, fresh.mime_type, fresh.name)
        except ItemNotFoundError:
            logger.info(f"Item {remote_id} no longer exists remotely, deleting cached record")
            await self.store.delete_items_by_remote_id(client_id, [remote_id])
            if self.index.has_client(client_id):
                self.index.remove(client_id, [remote_id])
            return await self.store.get_client(client_id)
        except Exception as e:
            message = get_error_message(e)
            logger.warning(f"Resync of item {remote_id} failed: {message}")
            failed = merge_item(
                existing, fresh, client_id, status=ItemStatus.FAILED, status_message=message
            )
            await self.store.upsert_items(client_id, [failed])
            if self.index.has_client(client_id):
                self.index.remove(client_id, [remote_id])
            await progress.item_update(
                remote_id, ItemStatus.FAILED, message, fresh.content_kind, fresh.remote_modified_at
            )
            return await self.store.get_client(client_id)

        completed = merge_item(
            existing,
            fresh,
            client_id,
            status=ItemStatus.COMPLETED,
            status_message=SUCCESS_MESSAGE,
            summary=summary,
            content=content.text,
        )
        (stored,) = await self.store.upsert_items(client_id, [completed])
        if self.index.has_client(client_id):
            self.index.insert(client_id, stored)
        await progress.item_update(
            remote_id,
            ItemStatus.COMPLETED,
            SUCCESS_MESSAGE,
            fresh.content_kind,
            fresh.remote_modified_at,
        )
        logger.info(f"Resynced item {remote_id}")
        return await self.store.get_client(client_id)

    async def _load_client(self, client_id: UUID) -> Client:
        try:
            return await self.store.get_client(client_id)
        except NotFoundException as e:
            raise ConfigurationError(f"Client {client_id} does not exist") from e


def _folder_id(client: Client) -> Optional[str]:
    config = client.get_source_config(SourceKind.FOLDER)
    return config.folder_id if config else None
