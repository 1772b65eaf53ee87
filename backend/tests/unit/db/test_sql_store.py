"""Tests for the SQLAlchemy durable store on an in-memory SQLite database."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from syncsearch import schemas
from syncsearch.core.exceptions import DuplicateTagError, NotFoundException
from syncsearch.core.shared_models import ItemStatus, SourceKind
from syncsearch.db.init_db import init_db
from syncsearch.db.session import build_sessionmaker
from syncsearch.db.sql_store import SqlAlchemyStore


@pytest.fixture
async def sql_store():
    """Store backed by a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield SqlAlchemyStore(build_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
async def db_client(sql_store, folder_config, table_config):
    """Persisted client with both sources."""
    return await sql_store.create_client(
        schemas.ClientCreate(name="Initech", sources=[folder_config, table_config]),
        api_key="sk-initech",
    )


def _item(client_id, remote_id, name, status=ItemStatus.COMPLETED, summary="A summary"):
    return schemas.SyncedItem(
        client_id=client_id,
        remote_id=remote_id,
        name=name,
        source=SourceKind.FOLDER,
        status=status,
        summary=summary if status == ItemStatus.COMPLETED else None,
        remote_modified_at="2024-05-01T10:00:00.000Z",
    )


class TestClients:
    """Client persistence."""

    @pytest.mark.asyncio
    async def test_sources_round_trip(self, sql_store, db_client):
        loaded = await sql_store.get_client(db_client.id)

        folder = loaded.get_source_config(SourceKind.FOLDER)
        table = loaded.get_source_config(SourceKind.TABLE)
        assert folder.folder_id == "1AbCdEfGhIjKlMnOp"
        assert table.personal_access_token == "pat-token"

    @pytest.mark.asyncio
    async def test_lookup_by_api_key(self, sql_store, db_client):
        loaded = await sql_store.get_client_by_api_key("sk-initech")
        assert loaded.id == db_client.id

        with pytest.raises(NotFoundException):
            await sql_store.get_client_by_api_key("sk-unknown")

    @pytest.mark.asyncio
    async def test_update_fields(self, sql_store, db_client):
        updated = await sql_store.update_client_fields(
            db_client.id, {"sync_cursor": "cursor-9", "name": "Initrode"}
        )

        assert updated.sync_cursor == "cursor-9"
        assert updated.name == "Initrode"

    @pytest.mark.asyncio
    async def test_telegram_settings_round_trip(self, sql_store, folder_config):
        created = await sql_store.create_client(
            schemas.ClientCreate(
                name="Globex",
                sources=[folder_config],
                telegram_bot_token="123:ABC",
                telegram_allowed_chat_ids="111,222",
            ),
            api_key="sk-globex",
        )

        updated = await sql_store.update_client_fields(
            created.id, {"telegram_allowed_chat_ids": ["333"]}
        )

        assert created.telegram_allowed_chat_ids == ["111", "222"]
        assert updated.telegram_bot_token == "123:ABC"
        assert updated.telegram_allowed_chat_ids == ["333"]

    @pytest.mark.asyncio
    async def test_missing_client(self, sql_store):
        with pytest.raises(NotFoundException):
            await sql_store.get_client(uuid.uuid4())


class TestItems:
    """Synced item persistence."""

    @pytest.mark.asyncio
    async def test_upsert_is_keyed_on_remote_id(self, sql_store, db_client):
        # Arrange
        (first,) = await sql_store.upsert_items(db_client.id, [_item(db_client.id, "f1", "Plan")])

        # Act
        (second,) = await sql_store.upsert_items(
            db_client.id,
            [_item(db_client.id, "f1", "Plan v2", status=ItemStatus.FAILED)],
        )

        # Assert
        assert second.id == first.id
        loaded = await sql_store.get_client(db_client.id)
        assert len(loaded.synced_items) == 1
        assert loaded.synced_items[0].name == "Plan v2"
        assert loaded.synced_items[0].status == ItemStatus.FAILED
        assert loaded.synced_items[0].summary is None

    @pytest.mark.asyncio
    async def test_delete_by_id_and_remote_id(self, sql_store, db_client):
        stored = await sql_store.upsert_items(
            db_client.id,
            [_item(db_client.id, "f1", "One"), _item(db_client.id, "f2", "Two")],
        )

        assert await sql_store.delete_items([stored[0].id]) == 1
        assert await sql_store.delete_items_by_remote_id(db_client.id, ["f2"]) == 1
        assert (await sql_store.get_client(db_client.id)).synced_items == []

    @pytest.mark.asyncio
    async def test_search(self, sql_store, db_client):
        await sql_store.upsert_items(
            db_client.id,
            [
                _item(db_client.id, "f1", "Roadmap", summary="Launch in March"),
                _item(db_client.id, "f2", "Budget", summary="Costs"),
            ],
        )

        hits = await sql_store.search_items(db_client.id, "MARCH")

        assert [hit.remote_id for hit in hits] == ["f1"]


class TestTagsAndSettings:
    """Tags and system settings."""

    @pytest.mark.asyncio
    async def test_duplicate_tag_rejected(self, sql_store, db_client):
        tag = await sql_store.add_tag(db_client.id, "Finance")

        with pytest.raises(DuplicateTagError):
            await sql_store.add_tag(db_client.id, "finance")

        await sql_store.remove_tag(db_client.id, tag.id)
        assert (await sql_store.get_client(db_client.id)).tags == []

    @pytest.mark.asyncio
    async def test_remove_foreign_tag(self, sql_store, db_client):
        with pytest.raises(NotFoundException):
            await sql_store.remove_tag(db_client.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_settings_saved_once(self, sql_store):
        assert await sql_store.get_settings() is None

        await sql_store.save_settings(schemas.SystemSettingsUpdate(summarization_api_key="sk-1"))
        saved = await sql_store.save_settings(
            schemas.SystemSettingsUpdate(summarization_api_key="sk-2", summary_model="gpt-x")
        )

        assert saved.summarization_api_key == "sk-2"
        assert (await sql_store.get_settings()).summary_model == "gpt-x"
