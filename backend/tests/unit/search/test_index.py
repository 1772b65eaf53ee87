"""Unit tests for the search index and query answering."""

import uuid

import pytest

from syncsearch import schemas
from syncsearch.core.search_service import NOTHING_INDEXED_MESSAGE, SearchService, build_context
from syncsearch.core.shared_models import ItemStatus, SourceKind
from syncsearch.schemas.synced_item import SyncedItem
from syncsearch.search.index import IndexEntry, SearchIndex


def _item(client_id, remote_id, name, status=ItemStatus.COMPLETED, source=SourceKind.FOLDER):
    return SyncedItem(
        id=uuid.uuid4(),
        client_id=client_id,
        remote_id=remote_id,
        name=name,
        source=source,
        status=status,
        summary=f"About {name}" if status == ItemStatus.COMPLETED else None,
    )


class TestSearchIndex:
    """Tests for SearchIndex generations."""

    def test_only_completed_items_are_indexed(self):
        client_id = uuid.uuid4()
        index = SearchIndex()

        count = index.rebuild(
            client_id,
            [
                _item(client_id, "1", "One"),
                _item(client_id, "2", "Two", status=ItemStatus.FAILED),
                _item(client_id, "3", "Three", status=ItemStatus.INDEXING),
            ],
        )

        assert count == 1
        assert [e.remote_id for e in index.entries(client_id)] == ["1"]

    def test_staged_entries_are_invisible_until_commit(self):
        client_id = uuid.uuid4()
        index = SearchIndex()
        index.rebuild(client_id, [_item(client_id, "old", "Old")])

        staging = index.begin_rebuild(client_id)
        staging.insert(_item(client_id, "new", "New"))

        assert [e.remote_id for e in index.entries(client_id)] == ["old"]
        staging.commit()
        assert [e.remote_id for e in index.entries(client_id)] == ["new"]

    def test_commit_twice_is_an_error(self):
        staging = SearchIndex().begin_rebuild(uuid.uuid4())
        staging.commit()
        with pytest.raises(RuntimeError):
            staging.commit()

    def test_entries_are_sorted_and_filterable(self):
        client_id = uuid.uuid4()
        index = SearchIndex()
        index.rebuild(
            client_id,
            [
                _item(client_id, "1", "beta"),
                _item(client_id, "2", "Alpha"),
                _item(client_id, "3", "Gamma", source=SourceKind.TABLE),
            ],
        )

        assert [e.name for e in index.entries(client_id)] == ["Alpha", "beta", "Gamma"]
        assert [e.name for e in index.entries(client_id, SourceKind.TABLE)] == ["Gamma"]

    def test_clients_are_isolated(self):
        first, second = uuid.uuid4(), uuid.uuid4()
        index = SearchIndex()
        index.rebuild(first, [_item(first, "1", "Mine")])

        assert index.entries(second) == []
        assert index.has_client(first)
        assert not index.has_client(second)

    def test_insert_failed_item_removes_entry(self):
        client_id = uuid.uuid4()
        index = SearchIndex()
        index.rebuild(client_id, [_item(client_id, "1", "One")])

        indexed = index.insert(client_id, _item(client_id, "1", "One", status=ItemStatus.FAILED))

        assert indexed is False
        assert index.size(client_id) == 0

    def test_clear_and_drop(self):
        client_id = uuid.uuid4()
        index = SearchIndex()
        index.rebuild(client_id, [_item(client_id, "1", "One")])

        index.clear(client_id)
        assert index.has_client(client_id)
        assert index.size(client_id) == 0

        index.drop(client_id)
        assert not index.has_client(client_id)


class TestBuildContext:
    """Tests for query context assembly."""

    def test_format(self):
        entries = [
            IndexEntry(remote_id="1", name="A", summary="first", source=SourceKind.FOLDER),
            IndexEntry(remote_id="2", name="B", summary="second", source=SourceKind.TABLE),
        ]
        assert build_context(entries) == (
            "Document: A\nSummary: first\n\n---\n\nDocument: B\nSummary: second"
        )

    def test_truncation(self):
        entries = [
            IndexEntry(remote_id="1", name="A", summary="x" * 100, source=SourceKind.FOLDER)
        ]
        assert len(build_context(entries, max_chars=50)) == 50


class TestSearchService:
    """Tests for SearchService.query."""

    @pytest.mark.asyncio
    async def test_nothing_indexed_short_circuits(self, store, index, summarizer):
        client_id = uuid.uuid4()
        client = schemas.Client(id=client_id, name="Empty", api_key="sk-empty")
        service = SearchService(store, index, summarizer_factory=lambda key, s: summarizer)

        answer = await service.query(client, "What is in here?")

        assert answer == NOTHING_INDEXED_MESSAGE
        assert summarizer.answer_calls == []

    @pytest.mark.asyncio
    async def test_index_rebuilt_from_store_on_first_query(self, store, index, summarizer):
        client_id = uuid.uuid4()
        client = schemas.Client(
            id=client_id,
            name="Warm",
            api_key="sk-warm",
            synced_items=[
                _item(client_id, "1", "Pricing"),
                _item(client_id, "2", "Broken", status=ItemStatus.FAILED),
            ],
        )
        service = SearchService(store, index, summarizer_factory=lambda key, s: summarizer)

        answer = await service.query(client, "How much?")

        assert answer == "42"
        question, context = summarizer.answer_calls[0]
        assert question == "How much?"
        assert context == "Document: Pricing\nSummary: About Pricing"
        assert index.size(client_id) == 1

    @pytest.mark.asyncio
    async def test_query_restricted_to_source(self, store, index, summarizer):
        client_id = uuid.uuid4()
        index.rebuild(
            client_id,
            [
                _item(client_id, "1", "Doc"),
                _item(client_id, "2", "Row", source=SourceKind.TABLE),
            ],
        )
        client = schemas.Client(id=client_id, name="Mixed", api_key="sk-mixed")
        service = SearchService(store, index, summarizer_factory=lambda key, s: summarizer)

        await service.query(client, "Rows?", source=SourceKind.TABLE)

        assert "Document: Row" in summarizer.answer_calls[0][1]
        assert "Document: Doc" not in summarizer.answer_calls[0][1]
