"""Unit tests for the Airtable source."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from syncsearch import schemas
from syncsearch.core.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from syncsearch.platform.sources.airtable import (
    DEFAULT_RETRY_AFTER,
    AirtableSource,
    get_record_marker,
    get_record_name,
)


def _config(**overrides) -> schemas.TableSourceConfig:
    values = {"base_id": "appBase", "table_id": "tblTable", "personal_access_token": "pat-1"}
    values.update(overrides)
    return schemas.TableSourceConfig(**values)


async def _airtable(handler, **overrides) -> AirtableSource:
    source = await AirtableSource.create(_config(**overrides))
    source.set_http_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return source


class TestRecordHelpers:
    """Tests for record naming and markers."""

    def test_name_prefers_primary_fields(self):
        record = {"id": "rec1", "fields": {"Notes": "long text", "Name": "Widget"}}
        assert get_record_name(record) == "Widget"

    def test_name_falls_back_to_first_string_then_id(self):
        assert get_record_name({"id": "rec1", "fields": {"Count": 3, "Notes": "Hi"}}) == "Hi"
        assert get_record_name({"id": "rec1", "fields": {"Count": 3}}) == "rec1"

    def test_marker_uses_last_modified_field(self):
        record = {"id": "rec1", "fields": {"Last Modified": "2024-05-01T10:00:00.000Z"}}
        assert get_record_marker(record) == "2024-05-01T10:00:00.000Z"

    def test_marker_hash_changes_with_fields(self):
        first = get_record_marker({"id": "rec1", "fields": {"Name": "A", "Qty": 1}})
        same = get_record_marker({"id": "rec1", "fields": {"Qty": 1, "Name": "A"}})
        edited = get_record_marker({"id": "rec1", "fields": {"Name": "A", "Qty": 2}})

        assert first.startswith("sha256:")
        assert first == same
        assert first != edited


class TestCreate:
    """Token selection."""

    @pytest.mark.asyncio
    async def test_oauth_token_preferred(self):
        source = await AirtableSource.create(_config(access_token="oauth-1"))
        assert source.token == "oauth-1"

    @pytest.mark.asyncio
    async def test_expired_oauth_falls_back_to_pat(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        source = await AirtableSource.create(
            _config(access_token="oauth-1", token_expires_at=expired)
        )
        assert source.token == "pat-1"

    @pytest.mark.asyncio
    async def test_expired_oauth_without_pat(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        with pytest.raises(AuthExpiredError, match="Airtable token expired"):
            await AirtableSource.create(
                _config(access_token="oauth-1", token_expires_at=expired, personal_access_token=None)
            )

    @pytest.mark.asyncio
    async def test_no_token(self):
        with pytest.raises(ConfigurationError):
            await AirtableSource.create(_config(personal_access_token=None))


class TestRequests:
    """Listing and fetching records."""

    @pytest.mark.asyncio
    async def test_list_follows_offset(self):
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer pat-1"
            if request.url.params.get("offset") == "next":
                return httpx.Response(
                    200, json={"records": [{"id": "rec2", "fields": {"Name": "Two"}}]}
                )
            return httpx.Response(
                200,
                json={"records": [{"id": "rec1", "fields": {"Name": "One"}}], "offset": "next"},
            )

        source = await _airtable(handler)

        # Act
        items = await source.list_items()

        # Assert
        assert [(item.remote_id, item.name) for item in items] == [("rec1", "One"), ("rec2", "Two")]

    @pytest.mark.asyncio
    async def test_list_forbidden(self):
        source = await _airtable(lambda request: httpx.Response(403, json={}))

        with pytest.raises(SourceUnavailableError, match="denied"):
            await source.list_items()

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        source = await _airtable(lambda request: httpx.Response(401, json={}))

        with pytest.raises(AuthExpiredError):
            await source.list_items()

    @pytest.mark.asyncio
    async def test_fetch_renders_fields_as_json(self):
        fields = {"Name": "Widget", "Qty": 3}
        source = await _airtable(
            lambda request: httpx.Response(200, json={"id": "rec1", "fields": fields})
        )

        content = await source.fetch_content("rec1", "application/json")

        assert json.loads(content.text) == fields
        assert content.mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_deleted_record(self):
        source = await _airtable(lambda request: httpx.Response(404, json={}))

        with pytest.raises(ItemNotFoundError):
            await source.get_item("rec1")

    @pytest.mark.asyncio
    async def test_rate_limit_with_http_date_waits_and_retries(self):
        # Arrange
        responses = [
            httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}),
            httpx.Response(200, json={"records": [{"id": "rec1", "fields": {"Name": "One"}}]}),
        ]
        source = await _airtable(lambda request: responses.pop(0))

        # Act
        with patch("syncsearch.platform.sources.airtable.asyncio.sleep", new=AsyncMock()) as sleep:
            items = await source.list_items()

        # Assert
        sleep.assert_awaited_once_with(0.0)
        assert [item.remote_id for item in items] == ["rec1"]

    @pytest.mark.asyncio
    async def test_rate_limit_without_hint_waits_default(self):
        responses = [
            httpx.Response(429),
            httpx.Response(200, json={"records": []}),
        ]
        source = await _airtable(lambda request: responses.pop(0))

        with patch("syncsearch.platform.sources.airtable.asyncio.sleep", new=AsyncMock()) as sleep:
            await source.list_items()

        sleep.assert_awaited_once_with(DEFAULT_RETRY_AFTER)
