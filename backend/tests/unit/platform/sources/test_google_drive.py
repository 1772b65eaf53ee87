"""Unit tests for the Google Drive source."""

import httpx
import pytest

from syncsearch import schemas
from syncsearch.core.exceptions import (
    AuthExpiredError,
    CursorInvalidError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from syncsearch.core.shared_models import ContentKind
from syncsearch.platform.sources.google_drive import (
    GOOGLE_DOC,
    GOOGLE_SHEET,
    GoogleDriveSource,
    build_listing_query,
    content_kind_for,
    is_supported_mime_type,
)
from syncsearch.schemas.source_config import get_folder_id_from_url

FOLDER_ID = "1AbCdEfGhIjKlMnOp"


async def _drive(handler, **config) -> GoogleDriveSource:
    source = await GoogleDriveSource.create(
        schemas.FolderSourceConfig(
            folder_url=f"https://drive.google.com/drive/folders/{FOLDER_ID}",
            access_token=config.get("access_token", "token-1"),
            refresh_token=config.get("refresh_token"),
        )
    )
    source.set_http_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return source


def _file(file_id, name, mime="text/plain", parents=(FOLDER_ID,), trashed=False):
    return {
        "id": file_id,
        "name": name,
        "mimeType": mime,
        "modifiedTime": "2024-05-01T10:00:00.000Z",
        "trashed": trashed,
        "parents": list(parents),
    }


class TestFolderUrl:
    """Tests for folder id extraction."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://drive.google.com/drive/folders/1AbC_d-EfG?usp=sharing", "1AbC_d-EfG"),
            ("https://drive.google.com/drive/u/0/folders/1AbCdEfGhIj", "1AbCdEfGhIj"),
            ("https://drive.google.com/drive/mobile/1AbCdEfGhIj", "1AbCdEfGhIj"),
            ("1AbCdEfGhIjKlMnOp", "1AbCdEfGhIjKlMnOp"),
            ("https://example.com/nothing", None),
            ("", None),
        ],
    )
    def test_get_folder_id_from_url(self, url, expected):
        assert get_folder_id_from_url(url) == expected

    def test_invalid_url_rejected_by_config(self):
        with pytest.raises(ValueError):
            schemas.FolderSourceConfig(folder_url="https://example.com/nothing")


class TestMimeTypes:
    """Tests for MIME type helpers."""

    def test_supported_types(self):
        assert is_supported_mime_type(GOOGLE_DOC)
        assert is_supported_mime_type("application/pdf")
        assert is_supported_mime_type("image/jpeg")
        assert not is_supported_mime_type("application/zip")
        assert not is_supported_mime_type(None)

    def test_content_kinds(self):
        assert content_kind_for(GOOGLE_SHEET) == ContentKind.TABULAR
        assert content_kind_for("image/png") == ContentKind.IMAGE
        assert content_kind_for("application/pdf") == ContentKind.DOCUMENT

    def test_listing_query_scopes_to_folder(self):
        query = build_listing_query(FOLDER_ID)
        assert query.startswith(f"'{FOLDER_ID}' in parents and trashed = false")
        assert "mimeType contains 'image/'" in query


class TestListing:
    """Tests for GoogleDriveSource.list_items."""

    @pytest.mark.asyncio
    async def test_paginates(self):
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer token-1"
            if request.url.params.get("pageToken") == "page-2":
                return httpx.Response(200, json={"files": [_file("f2", "Second")]})
            return httpx.Response(
                200, json={"files": [_file("f1", "First")], "nextPageToken": "page-2"}
            )

        source = await _drive(handler)

        # Act
        items = await source.list_items()

        # Assert
        assert [item.remote_id for item in items] == ["f1", "f2"]
        assert items[0].remote_modified_at == "2024-05-01T10:00:00.000Z"

    @pytest.mark.asyncio
    async def test_missing_folder(self):
        source = await _drive(lambda request: httpx.Response(404, json={}))

        with pytest.raises(SourceUnavailableError, match="not found"):
            await source.list_items()

    @pytest.mark.asyncio
    async def test_unauthorized_without_refresh_token(self):
        source = await _drive(lambda request: httpx.Response(401, json={}))

        with pytest.raises(AuthExpiredError):
            await source.list_items()


class TestItems:
    """Tests for single-file metadata and content."""

    @pytest.mark.asyncio
    async def test_trashed_file_is_not_found(self):
        source = await _drive(
            lambda request: httpx.Response(200, json=_file("f1", "Old", trashed=True))
        )

        with pytest.raises(ItemNotFoundError):
            await source.get_item("f1")

    @pytest.mark.asyncio
    async def test_moved_file_is_not_found(self):
        source = await _drive(
            lambda request: httpx.Response(200, json=_file("f1", "Moved", parents=("other",)))
        )

        with pytest.raises(ItemNotFoundError):
            await source.get_item("f1")

    @pytest.mark.asyncio
    async def test_google_doc_is_exported_as_text(self):
        # Arrange
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["mimeType"] = request.url.params.get("mimeType")
            return httpx.Response(200, text="Exported body")

        source = await _drive(handler)

        # Act
        content = await source.fetch_content("doc-1", GOOGLE_DOC)

        # Assert
        assert seen == {"path": "/drive/v3/files/doc-1/export", "mimeType": "text/plain"}
        assert content.text == "Exported body"

    @pytest.mark.asyncio
    async def test_pdf_is_downloaded_as_bytes(self):
        source = await _drive(lambda request: httpx.Response(200, content=b"%PDF-1.7"))

        content = await source.fetch_content("pdf-1", "application/pdf")

        assert content.is_binary
        assert content.data == b"%PDF-1.7"
        assert content.mime_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_update_uploads_csv_in_place(self):
        # Arrange
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = f"{request.url.host}{request.url.path}"
            seen["uploadType"] = request.url.params.get("uploadType")
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return httpx.Response(200, json=_file("sheet-1", "Products", mime=GOOGLE_SHEET))

        source = await _drive(handler)

        # Act
        await source.update_content("sheet-1", "Product\nShoe\n", "text/csv")

        # Assert
        assert seen == {
            "method": "PATCH",
            "url": "www.googleapis.com/upload/drive/v3/files/sheet-1",
            "uploadType": "media",
            "content_type": "text/csv",
            "body": b"Product\nShoe\n",
        }
        assert GoogleDriveSource.supports_updates

    @pytest.mark.asyncio
    async def test_update_of_missing_file(self):
        source = await _drive(lambda request: httpx.Response(404, json={}))

        with pytest.raises(ItemNotFoundError):
            await source.update_content("gone", "a,b\n", "text/csv")


class TestChanges:
    """Tests for the Drive change feed."""

    @pytest.mark.asyncio
    async def test_start_cursor(self):
        source = await _drive(lambda request: httpx.Response(200, json={"startPageToken": "42"}))
        assert await source.get_start_cursor() == "42"

    @pytest.mark.asyncio
    async def test_changes_split_into_changed_and_removed(self):
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "newStartPageToken": "43",
                    "changes": [
                        {"fileId": "f1", "changeType": "file", "file": _file("f1", "Edited")},
                        {"fileId": "f2", "changeType": "file", "removed": True},
                        {
                            "fileId": "f3",
                            "changeType": "file",
                            "file": _file("f3", "Binned", trashed=True),
                        },
                        {
                            "fileId": "f4",
                            "changeType": "file",
                            "file": _file("f4", "Elsewhere", parents=("other",)),
                        },
                        {
                            "fileId": "f5",
                            "changeType": "file",
                            "file": _file("f5", "archive.zip", mime="application/zip"),
                        },
                        {"driveId": "d1", "changeType": "drive"},
                    ],
                },
            )

        source = await _drive(handler)

        # Act
        changes = await source.get_changes("41")

        # Assert
        assert [item.remote_id for item in changes.changed] == ["f1"]
        assert sorted(changes.removed_ids) == ["f2", "f3", "f4"]
        assert changes.new_cursor == "43"

    @pytest.mark.asyncio
    async def test_rejected_cursor(self):
        source = await _drive(lambda request: httpx.Response(410, json={}))

        with pytest.raises(CursorInvalidError):
            await source.get_changes("stale")
