"""Unit tests for the client service."""

import pytest

from syncsearch import schemas
from syncsearch.core.client_service import ClientService, generate_api_key
from syncsearch.core.exceptions import DuplicateTagError
from syncsearch.core.shared_models import SourceKind

OTHER_FOLDER = "https://drive.google.com/drive/folders/9ZyXwVuTsRqPoNm"


def test_generated_keys_are_unique():
    first, second = generate_api_key(), generate_api_key()

    assert first.startswith("sk-")
    assert first != second


class TestUpdateClient:
    """Tests for ClientService.update_client."""

    @pytest.mark.asyncio
    async def test_changing_folder_clears_cursor_and_index(self, store, index, client):
        # Arrange
        await store.update_client_fields(client.id, {"sync_cursor": "cursor-7"})
        index.rebuild(client.id, [])
        service = ClientService(store, index)

        # Act
        updated = await service.update_client(
            client.id,
            schemas.ClientUpdate(
                sources=[schemas.FolderSourceConfig(folder_url=OTHER_FOLDER, access_token="t")]
            ),
        )

        # Assert
        assert updated.sync_cursor is None
        assert updated.get_source_config("folder").folder_id == "9ZyXwVuTsRqPoNm"
        assert not index.has_client(client.id)

    @pytest.mark.asyncio
    async def test_same_folder_keeps_cursor(self, store, index, client, folder_config):
        # Arrange
        await store.update_client_fields(client.id, {"sync_cursor": "cursor-7"})
        service = ClientService(store, index)

        # Act
        updated = await service.update_client(
            client.id,
            schemas.ClientUpdate(
                sources=[folder_config.model_copy(update={"access_token": "rotated"})]
            ),
        )

        # Assert
        assert updated.sync_cursor == "cursor-7"

    @pytest.mark.asyncio
    async def test_sources_built_in_code_keep_their_kind(
        self, store, index, client, folder_config, table_config
    ):
        service = ClientService(store, index)

        updated = await service.update_client(
            client.id, schemas.ClientUpdate(sources=[folder_config, table_config])
        )

        assert [source.kind for source in updated.sources] == ["folder", "table"]
        assert updated.get_source_config(SourceKind.TABLE).base_id == "appBase123"

    @pytest.mark.asyncio
    async def test_rename_only(self, store, index, client):
        service = ClientService(store, index)

        updated = await service.update_client(client.id, schemas.ClientUpdate(name="Acme Corp"))

        assert updated.name == "Acme Corp"
        assert len(updated.sources) == 1


class TestTags:
    """Tests for tag management."""

    @pytest.mark.asyncio
    async def test_tag_names_are_unique_per_client(self, store, index, client, two_source_client):
        service = ClientService(store, index)

        await service.add_tag(client.id, schemas.TagCreate(name=" Legal "))
        await service.add_tag(two_source_client.id, schemas.TagCreate(name="Legal"))

        with pytest.raises(DuplicateTagError):
            await service.add_tag(client.id, schemas.TagCreate(name="legal"))
        assert [t.name for t in (await store.get_client(client.id)).tags] == ["Legal"]

    def test_duplicate_sources_rejected(self, folder_config):
        with pytest.raises(ValueError):
            schemas.ClientCreate(name="Twice", sources=[folder_config, folder_config])
