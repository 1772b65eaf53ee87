"""Scheduler for automatic syncs.

Checks every client with an auto-sync interval and starts a pass when the
interval has elapsed since its last sync. Passes go through the SyncService
guard, so a client that is already syncing is skipped.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from syncsearch.core.config import settings
from syncsearch.core.datetime_utils import utc_now_naive
from syncsearch.core.exceptions import SyncSearchException
from syncsearch.core.logging import logger
from syncsearch.core.shared_models import SyncTrigger
from syncsearch.core.sync_service import SyncService
from syncsearch.db.store import DurableStore
from syncsearch.schemas.client import Client


class AutoSyncScheduler:
    """Runs automatic syncs on per-client intervals."""

    def __init__(
        self,
        store: DurableStore,
        sync_service: SyncService,
        check_interval: Optional[float] = None,
    ):
        """Initialize the scheduler."""
        self.store = store
        self.sync_service = sync_service
        self.check_interval = check_interval or settings.SCHEDULER_CHECK_INTERVAL
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._next_run: dict[UUID, datetime] = {}
        self._sync_tasks: set[asyncio.Task] = set()

    def is_due(self, client: Client, now: datetime) -> bool:
        """Whether the client's interval has elapsed."""
        if not client.auto_sync_interval_seconds:
            self._next_run.pop(client.id, None)
            return False
        next_run = self._next_run.get(client.id)
        if next_run is None:
            if client.last_synced_at is None:
                return True
            last = client.last_synced_at.replace(tzinfo=None)
            next_run = last + timedelta(seconds=client.auto_sync_interval_seconds)
        return now >= next_run

    async def check_due_clients(self) -> list[UUID]:
        """Start passes for every due client; returns their ids."""
        now = utc_now_naive()
        started: list[UUID] = []
        for client in await self.store.list_clients():
            if not self.is_due(client, now):
                continue
            self._next_run[client.id] = now + timedelta(seconds=client.auto_sync_interval_seconds)
            if self.sync_service.is_syncing(client.id):
                logger.debug(f"Client {client.id} is due but already syncing")
                continue
            task = asyncio.create_task(self._run_sync(client.id))
            self._sync_tasks.add(task)
            task.add_done_callback(self._sync_tasks.discard)
            started.append(client.id)
        if started:
            logger.info(f"Started automatic sync for {len(started)} client(s)")
        return started

    async def _run_sync(self, client_id: UUID) -> None:
        try:
            await self.sync_service.run_sync(client_id, trigger=SyncTrigger.AUTO)
        except SyncSearchException as e:
            logger.warning(f"Automatic sync for client {client_id} failed: {e.message}")
        except Exception as e:
            logger.error(f"Automatic sync for client {client_id} crashed: {e}", exc_info=True)

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self.running:
            logger.info("Auto-sync scheduler is already running")
            return
        self.running = True
        self.task = asyncio.create_task(self._scheduler_loop())
        logger.info("Auto-sync scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler loop; running passes finish on their own."""
        if not self.running:
            return
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Auto-sync scheduler stopped")

    async def _scheduler_loop(self) -> None:
        while self.running:
            try:
                await self.check_due_clients()
            except Exception as e:
                logger.error(f"Error in auto-sync scheduler loop: {e}", exc_info=True)
            await asyncio.sleep(self.check_interval)
