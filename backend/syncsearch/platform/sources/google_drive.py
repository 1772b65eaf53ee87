"""Google Drive folder source.

Syncs the supported files directly inside one Drive folder and exposes the
Drive changes API as a change feed.
"""

from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from syncsearch.core.config import settings
from syncsearch.core.exceptions import (
    AuthExpiredError,
    CursorInvalidError,
    FetchError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from syncsearch.core.shared_models import ContentKind, SourceKind
from syncsearch.platform.decorators import source
from syncsearch.platform.sources._base import BaseSource
from syncsearch.schemas.source_config import FolderSourceConfig
from syncsearch.schemas.synced_item import ChangeSet, FetchedContent, RemoteItem

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"
TOKEN_URL = "https://oauth2.googleapis.com/token"

GOOGLE_DOC = "application/vnd.google-apps.document"
GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES = "application/vnd.google-apps.presentation"

# Google-native files cannot be downloaded, only exported.
EXPORT_FORMATS = {
    GOOGLE_DOC: "text/plain",
    GOOGLE_SHEET: "text/csv",
    GOOGLE_SLIDES: "text/plain",
}

DOWNLOADABLE_MIME_TYPES = (
    "application/pdf",
    "text/plain",
    "text/markdown",
    "text/csv",
)

FILE_FIELDS = "id,name,mimeType,modifiedTime,trashed,parents"

_CURSOR_REJECTED_STATUSES = {400, 404, 410}


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Whether files of this type are synced."""
    if not mime_type:
        return False
    return (
        mime_type in EXPORT_FORMATS
        or mime_type in DOWNLOADABLE_MIME_TYPES
        or mime_type.startswith("image/")
    )


def content_kind_for(mime_type: Optional[str]) -> ContentKind:
    """Map a Drive MIME type to a content kind."""
    if mime_type in (GOOGLE_SHEET, "text/csv"):
        return ContentKind.TABULAR
    if mime_type and mime_type.startswith("image/"):
        return ContentKind.IMAGE
    return ContentKind.DOCUMENT


def build_listing_query(folder_id: str) -> str:
    """Drive search query for the supported, non-trashed files of a folder."""
    mime_clauses = [f"mimeType = '{mime}'" for mime in (*EXPORT_FORMATS, *DOWNLOADABLE_MIME_TYPES)]
    mime_clauses.append("mimeType contains 'image/'")
    return f"'{folder_id}' in parents and trashed = false and ({' or '.join(mime_clauses)})"


@source(name="Google Drive", kind=SourceKind.FOLDER, supports_changes=True)
class GoogleDriveSource(BaseSource):
    """Google Drive source for a single folder."""

    supports_updates = True

    def __init__(self):
        """Initialize the source with empty credentials."""
        super().__init__()
        self.folder_id: str = ""
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.oauth_client_id: Optional[str] = None
        self.oauth_client_secret: Optional[str] = None

    @classmethod
    async def create(cls, config: FolderSourceConfig) -> "GoogleDriveSource":
        """Create a new Google Drive source from a folder configuration."""
        instance = cls()
        instance.folder_id = config.folder_id
        instance.access_token = config.access_token
        instance.refresh_token = config.refresh_token
        instance.oauth_client_id = settings.GOOGLE_CLIENT_ID
        instance.oauth_client_secret = settings.GOOGLE_CLIENT_SECRET
        return instance

    # ------------------------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------------------------

    def _can_refresh(self) -> bool:
        return bool(self.refresh_token and self.oauth_client_id and self.oauth_client_secret)

    async def _refresh_access_token(self, client: httpx.AsyncClient) -> str:
        """Exchange the refresh token for a new access token."""
        if not self._can_refresh():
            raise AuthExpiredError("Google Drive authorization expired. Please reconnect.")
        resp = await client.post(
            TOKEN_URL,
            data={
                "client_id": self.oauth_client_id,
                "client_secret": self.oauth_client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
            timeout=30.0,
        )
        if resp.status_code != 200:
            self.logger.error(f"Google token refresh failed with status {resp.status_code}")
            raise AuthExpiredError("Google Drive authorization expired. Please reconnect.")
        self.access_token = resp.json()["access_token"]
        return self.access_token

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.ConnectTimeout, httpx.ReadTimeout)),
        reraise=True,
    )
    async def _request_with_auth(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        content: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> httpx.Response:
        """Make an authenticated request, refreshing the token once on 401."""
        access_token = self.access_token or await self._refresh_access_token(client)
        self.logger.debug(f"API {method} {url} params={params or {}}")

        def headers(token: str) -> Dict[str, str]:
            result = {"Authorization": f"Bearer {token}"}
            if content_type:
                result["Content-Type"] = content_type
            return result

        resp = await client.request(
            method, url, headers=headers(access_token), params=params, content=content, timeout=30.0
        )

        if resp.status_code == 401:
            self.logger.warning(f"Received 401 Unauthorized for {url}, refreshing token...")
            access_token = await self._refresh_access_token(client)
            resp = await client.request(
                method,
                url,
                headers=headers(access_token),
                params=params,
                content=content,
                timeout=30.0,
            )
            if resp.status_code == 401:
                raise AuthExpiredError("Google Drive authorization expired. Please reconnect.")

        return resp

    async def _get_with_auth(
        self, client: httpx.AsyncClient, url: str, params: Optional[Dict] = None
    ) -> httpx.Response:
        """Make an authenticated GET request."""
        return await self._request_with_auth(client, "GET", url, params=params)

    # ------------------------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------------------------

    def _to_remote_item(self, file_obj: Dict[str, Any]) -> RemoteItem:
        mime_type = file_obj.get("mimeType")
        return RemoteItem(
            remote_id=file_obj["id"],
            name=file_obj.get("name") or file_obj["id"],
            source=SourceKind.FOLDER,
            content_kind=content_kind_for(mime_type),
            mime_type=mime_type,
            remote_modified_at=file_obj.get("modifiedTime"),
        )

    def _in_folder(self, file_obj: Dict[str, Any]) -> bool:
        return self.folder_id in (file_obj.get("parents") or [])

    async def list_items(self) -> list[RemoteItem]:
        """List the supported files directly inside the folder."""
        items: list[RemoteItem] = []
        params = {
            "q": build_listing_query(self.folder_id),
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "pageSize": 100,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        try:
            async with self.http_client() as client:
                while True:
                    resp = await self._get_with_auth(client, f"{DRIVE_API}/files", params=params)
                    if resp.status_code == 404:
                        raise SourceUnavailableError(
                            f"Google Drive folder {self.folder_id} was not found"
                        )
                    if resp.status_code >= 400:
                        raise SourceUnavailableError(
                            f"Google Drive listing failed with status {resp.status_code}"
                        )
                    data = resp.json()
                    items.extend(self._to_remote_item(f) for f in data.get("files", []))
                    next_page_token = data.get("nextPageToken")
                    if not next_page_token:
                        break
                    params = {**params, "pageToken": next_page_token}
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Could not reach Google Drive: {e}") from e

        self.logger.info(f"Listed {len(items)} files in Drive folder {self.folder_id}")
        return items

    async def get_item(self, remote_id: str) -> RemoteItem:
        """Fetch fresh metadata for one file."""
        try:
            async with self.http_client() as client:
                resp = await self._get_with_auth(
                    client,
                    f"{DRIVE_API}/files/{remote_id}",
                    params={"fields": FILE_FIELDS, "supportsAllDrives": "true"},
                )
        except httpx.HTTPError as e:
            raise FetchError(f"Could not reach Google Drive: {e}") from e

        if resp.status_code == 404:
            raise ItemNotFoundError(remote_id)
        if resp.status_code >= 400:
            raise FetchError(f"Google Drive returned status {resp.status_code} for {remote_id}")

        file_obj = resp.json()
        if file_obj.get("trashed") or not self._in_folder(file_obj):
            raise ItemNotFoundError(remote_id, f"File {remote_id} is no longer in the folder")
        return self._to_remote_item(file_obj)

    # ------------------------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------------------------

    async def fetch_content(self, remote_id: str, mime_type: Optional[str]) -> FetchedContent:
        """Export Google-native files, download everything else."""
        export_mime = EXPORT_FORMATS.get(mime_type or "")
        if export_mime:
            url = f"{DRIVE_API}/files/{remote_id}/export"
            params = {"mimeType": export_mime}
        else:
            url = f"{DRIVE_API}/files/{remote_id}"
            params = {"alt": "media", "supportsAllDrives": "true"}

        try:
            async with self.http_client() as client:
                resp = await self._get_with_auth(client, url, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Could not download {remote_id}: {e}") from e

        if resp.status_code == 404:
            raise ItemNotFoundError(remote_id)
        if resp.status_code >= 400:
            raise FetchError(f"Google Drive returned status {resp.status_code} for {remote_id}")

        if not export_mime and mime_type and (
            mime_type.startswith("image/") or mime_type == "application/pdf"
        ):
            return FetchedContent(data=resp.content, mime_type=mime_type)

        text = resp.text[: settings.MAX_FETCH_CHARS]
        return FetchedContent(text=text, mime_type=export_mime or mime_type or "text/plain")

    async def update_content(self, remote_id: str, text: str, mime_type: str) -> None:
        """Upload new content for a file; Sheets convert an uploaded CSV in place."""
        try:
            async with self.http_client() as client:
                resp = await self._request_with_auth(
                    client,
                    "PATCH",
                    f"{DRIVE_UPLOAD_API}/files/{remote_id}",
                    params={"uploadType": "media", "supportsAllDrives": "true"},
                    content=text.encode("utf-8"),
                    content_type=mime_type,
                )
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Could not reach Google Drive: {e}") from e

        if resp.status_code == 404:
            raise ItemNotFoundError(remote_id)
        if resp.status_code >= 400:
            raise SourceUnavailableError(
                f"Google Drive rejected the update of {remote_id} with status {resp.status_code}"
            )
        self.logger.info(f"Updated content of Drive file {remote_id}")

    # ------------------------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------------------------

    async def get_start_cursor(self) -> str:
        """Get the Drive start page token representing "now"."""
        try:
            async with self.http_client() as client:
                resp = await self._get_with_auth(
                    client,
                    f"{DRIVE_API}/changes/startPageToken",
                    params={"supportsAllDrives": "true"},
                )
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Could not reach Google Drive: {e}") from e

        if resp.status_code >= 400:
            raise SourceUnavailableError(
                f"Could not get a Drive start page token (status {resp.status_code})"
            )
        token = resp.json().get("startPageToken")
        if not token:
            raise SourceUnavailableError("Drive returned no start page token")
        return token

    async def get_changes(self, cursor: str) -> ChangeSet:
        """Collect changes to the folder since ``cursor``.

        Files that were removed, trashed or moved out of the folder are reported
        as removals. Unsupported file types are ignored.
        """
        changed: dict[str, RemoteItem] = {}
        removed: dict[str, None] = {}
        new_cursor: Optional[str] = None
        params = {
            "pageToken": cursor,
            "includeRemoved": "true",
            "pageSize": 1000,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
            "fields": (
                "nextPageToken,newStartPageToken,"
                f"changes(removed,fileId,changeType,file({FILE_FIELDS}))"
            ),
        }

        try:
            async with self.http_client() as client:
                while True:
                    resp = await self._get_with_auth(client, f"{DRIVE_API}/changes", params=params)
                    if resp.status_code in _CURSOR_REJECTED_STATUSES:
                        raise CursorInvalidError(
                            f"Drive rejected the change cursor (status {resp.status_code})"
                        )
                    if resp.status_code >= 400:
                        raise SourceUnavailableError(
                            f"Drive changes request failed with status {resp.status_code}"
                        )
                    data = resp.json()

                    for change in data.get("changes", []):
                        if change.get("changeType", "file") != "file":
                            continue
                        file_id = change.get("fileId")
                        file_obj = change.get("file")
                        if not file_id:
                            continue
                        if (
                            change.get("removed")
                            or not file_obj
                            or file_obj.get("trashed")
                            or not self._in_folder(file_obj)
                        ):
                            changed.pop(file_id, None)
                            removed[file_id] = None
                        elif is_supported_mime_type(file_obj.get("mimeType")):
                            removed.pop(file_id, None)
                            changed[file_id] = self._to_remote_item(file_obj)

                    next_page_token = data.get("nextPageToken")
                    if next_page_token:
                        params = {**params, "pageToken": next_page_token}
                        continue
                    new_cursor = data.get("newStartPageToken")
                    break
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Could not reach Google Drive: {e}") from e

        if not new_cursor:
            raise SourceUnavailableError("Drive change feed returned no new start page token")

        self.logger.info(
            f"Drive change feed: {len(changed)} changed, {len(removed)} removed since cursor"
        )
        return ChangeSet(changed=list(changed.values()), removed_ids=list(removed), new_cursor=new_cursor)
