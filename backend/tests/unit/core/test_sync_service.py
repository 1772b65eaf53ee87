"""Unit tests for the sync service guard and query entry point."""

import asyncio
import base64
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from syncsearch import schemas
from syncsearch.core.exceptions import SourceUnavailableError, SyncInProgressError
from syncsearch.core.shared_models import ItemStatus, SourceKind, SyncTrigger
from syncsearch.core.sync_service import SyncService
from syncsearch.search.index import SearchIndex


@pytest.fixture
def blocking_engine():
    """Engine whose sync blocks until ``release`` is set."""
    release = asyncio.Event()
    engine = MagicMock()

    async def sync(client_id, **kwargs):
        await release.wait()
        return MagicMock(id=client_id)

    engine.sync = AsyncMock(side_effect=sync)
    engine.release = release
    return engine


class TestSyncGuard:
    """One pass per client at a time."""

    @pytest.mark.asyncio
    async def test_manual_collision_is_rejected(self, store, blocking_engine):
        # Arrange
        service = SyncService(store, SearchIndex(), engine=blocking_engine)
        client_id = uuid.uuid4()
        running = asyncio.create_task(service.run_sync(client_id))
        await asyncio.sleep(0)

        # Act / Assert
        assert service.is_syncing(client_id)
        with pytest.raises(SyncInProgressError):
            await service.run_sync(client_id, trigger=SyncTrigger.MANUAL)

        blocking_engine.release.set()
        await running
        assert not service.is_syncing(client_id)

    @pytest.mark.asyncio
    async def test_automatic_collision_is_skipped(self, store, blocking_engine):
        # Arrange
        service = SyncService(store, SearchIndex(), engine=blocking_engine)
        client_id = uuid.uuid4()
        running = asyncio.create_task(service.run_sync(client_id))
        await asyncio.sleep(0)

        # Act
        skipped_auto = await service.run_sync(client_id, trigger=SyncTrigger.AUTO)
        skipped_search = await service.run_sync(client_id, trigger=SyncTrigger.SEARCH)

        # Assert
        assert skipped_auto is None
        assert skipped_search is None
        assert blocking_engine.sync.await_count == 1

        blocking_engine.release.set()
        await running

    @pytest.mark.asyncio
    async def test_other_clients_are_not_blocked(self, store, blocking_engine):
        service = SyncService(store, SearchIndex(), engine=blocking_engine)
        first = asyncio.create_task(service.run_sync(uuid.uuid4()))
        second = asyncio.create_task(service.run_sync(uuid.uuid4()))
        await asyncio.sleep(0)

        blocking_engine.release.set()
        results = await asyncio.gather(first, second)

        assert all(result is not None for result in results)

    @pytest.mark.asyncio
    async def test_guard_released_after_failure(self, store):
        engine = MagicMock()
        engine.sync = AsyncMock(side_effect=SourceUnavailableError("Drive is down"))
        service = SyncService(store, SearchIndex(), engine=engine)
        client_id = uuid.uuid4()

        with pytest.raises(SourceUnavailableError):
            await service.run_sync(client_id)

        assert not service.is_syncing(client_id)


class TestQuery:
    """Tests for SyncService.query."""

    @pytest.fixture
    def indexed_client(self):
        client_id = uuid.uuid4()
        return schemas.Client(
            id=client_id,
            name="Indexed",
            api_key="sk-indexed",
            synced_items=[
                schemas.SyncedItem(
                    client_id=client_id,
                    remote_id="r1",
                    name="Handbook",
                    source=SourceKind.FOLDER,
                    status=ItemStatus.COMPLETED,
                    summary="Vacation policy",
                )
            ],
        )

    @pytest.mark.asyncio
    async def test_on_search_sync_failure_does_not_fail_query(
        self, store, summarizer, indexed_client
    ):
        # Arrange
        from syncsearch.core.search_service import SearchService

        index = SearchIndex()
        engine = MagicMock()
        engine.sync = AsyncMock(side_effect=SourceUnavailableError("Drive is down"))
        search = SearchService(store, index, summarizer_factory=lambda key, s: summarizer)
        service = SyncService(store, index, engine=engine, search_service=search)

        # Act
        response = await service.query(
            indexed_client, schemas.QueryRequest(question="Vacation?", sync_first=True)
        )

        # Assert
        engine.sync.assert_awaited_once()
        assert response.answer == "42"
        assert response.context_items == 1

    @pytest.mark.asyncio
    async def test_image_is_decoded(self, store, indexed_client):
        # Arrange
        search = MagicMock()
        search.query = AsyncMock(return_value="A cat")
        service = SyncService(store, SearchIndex(), engine=MagicMock(), search_service=search)
        payload = base64.b64encode(b"\x89PNG fake").decode()

        # Act
        await service.query(
            indexed_client, schemas.QueryRequest(question="What is this?", image_base64=payload)
        )

        # Assert
        image = search.query.await_args.args[2]
        assert image.data == b"\x89PNG fake"
        assert image.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_invalid_image_is_rejected(self, store, indexed_client):
        service = SyncService(store, SearchIndex(), engine=MagicMock(), search_service=MagicMock())

        with pytest.raises(ValueError):
            await service.query(
                indexed_client, schemas.QueryRequest(question="?", image_base64="not base64!")
            )
