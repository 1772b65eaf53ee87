"""Airtable table source.

Every record of one table becomes a synced item whose content is the record's
fields rendered as JSON.
"""

import asyncio
import hashlib
import json
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from syncsearch.core.config import settings
from syncsearch.core.datetime_utils import parse_timestamp
from syncsearch.core.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    FetchError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from syncsearch.core.shared_models import ContentKind, SourceKind
from syncsearch.platform.decorators import source
from syncsearch.platform.sources._base import BaseSource
from syncsearch.platform.utils.retry_utils import parse_retry_after
from syncsearch.schemas.source_config import TableSourceConfig
from syncsearch.schemas.synced_item import FetchedContent, RemoteItem

API_BASE = "https://api.airtable.com/v0"
DEFAULT_RETRY_AFTER = 30.0

PRIMARY_FIELD_CANDIDATES = ("Name", "Title", "ID", "Primary", "Key", "Task")
MODIFIED_FIELD_CANDIDATES = (
    "last modified",
    "last modified time",
    "last updated",
    "modified",
    "updated at",
)

TOKEN_EXPIRED_MESSAGE = "Airtable token expired. Please reconnect."


def get_record_name(record: Dict[str, Any]) -> str:
    """Pick a display name for a record.

    Known primary-looking fields win, then the first non-empty string field,
    then the record id.
    """
    fields = record.get("fields") or {}
    for candidate in PRIMARY_FIELD_CANDIDATES:
        value = fields.get(candidate)
        if value not in (None, ""):
            return str(value)
    for value in fields.values():
        if isinstance(value, str) and value.strip():
            return value
    return record["id"]


def get_record_marker(record: Dict[str, Any]) -> str:
    """Modification marker for a record.

    A last-modified style field is used when the table has one; otherwise a
    stable hash of the fields, so that any edit changes the marker.
    """
    fields = record.get("fields") or {}
    for key, value in fields.items():
        if key.strip().lower() in MODIFIED_FIELD_CANDIDATES and parse_timestamp(value):
            return str(value)
    payload = json.dumps(fields, sort_keys=True, default=str)
    return f"sha256:{hashlib.sha256(payload.encode('utf-8')).hexdigest()}"


@source(name="Airtable", kind=SourceKind.TABLE)
class AirtableSource(BaseSource):
    """Airtable source for the records of a single table."""

    def __init__(self):
        """Initialize the source with empty configuration."""
        super().__init__()
        self.base_id: str = ""
        self.table_id: str = ""
        self.token: Optional[str] = None

    @classmethod
    async def create(cls, config: TableSourceConfig) -> "AirtableSource":
        """Create a new Airtable source.

        The OAuth token is preferred; once it expires the personal access token
        is used instead, if one is configured.
        """
        instance = cls()
        instance.base_id = config.base_id
        instance.table_id = config.table_id

        if config.access_token and not config.oauth_token_expired():
            instance.token = config.access_token
        elif config.personal_access_token:
            if config.access_token:
                instance.logger.warning("Airtable OAuth token expired, using personal access token")
            instance.token = config.personal_access_token
        elif config.access_token:
            raise AuthExpiredError(TOKEN_EXPIRED_MESSAGE)
        else:
            raise ConfigurationError("Airtable source has no access token configured")
        return instance

    @property
    def _table_url(self) -> str:
        return f"{API_BASE}/{self.base_id}/{self.table_id}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.ConnectTimeout, httpx.ReadTimeout)),
        reraise=True,
    )
    async def _get_with_auth(
        self, client: httpx.AsyncClient, url: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """Make an authenticated GET request, waiting out one 429.

        Airtable allows 5 requests/second per base and answers 429 with a
        Retry-After header (typically 30 seconds).
        """
        headers = {"Authorization": f"Bearer {self.token}"}
        response = await client.get(url, headers=headers, params=params, timeout=30.0)

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers)
            if retry_after is None:
                retry_after = DEFAULT_RETRY_AFTER
            self.logger.warning(
                f"Rate limit hit for {url}, waiting {retry_after} seconds before retry"
            )
            await asyncio.sleep(retry_after)
            response = await client.get(url, headers=headers, params=params, timeout=30.0)

        if response.status_code == 401:
            raise AuthExpiredError(TOKEN_EXPIRED_MESSAGE)
        return response

    def _to_remote_item(self, record: Dict[str, Any]) -> RemoteItem:
        return RemoteItem(
            remote_id=record["id"],
            name=get_record_name(record),
            source=SourceKind.TABLE,
            content_kind=ContentKind.RECORD,
            mime_type="application/json",
            remote_modified_at=get_record_marker(record),
        )

    async def list_items(self) -> list[RemoteItem]:
        """List every record of the table, following offset pagination."""
        items: list[RemoteItem] = []
        params: Dict[str, Any] = {"pageSize": 100}
        try:
            async with self.http_client() as client:
                while True:
                    resp = await self._get_with_auth(client, self._table_url, params=params)
                    if resp.status_code == 403:
                        raise SourceUnavailableError(
                            "Airtable denied access to the table. Check the token's scopes."
                        )
                    if resp.status_code == 404:
                        raise SourceUnavailableError(
                            f"Airtable table {self.base_id}/{self.table_id} was not found"
                        )
                    if resp.status_code >= 400:
                        raise SourceUnavailableError(
                            f"Airtable listing failed with status {resp.status_code}"
                        )
                    data = resp.json()
                    items.extend(self._to_remote_item(record) for record in data.get("records", []))
                    offset = data.get("offset")
                    if not offset:
                        break
                    params = {**params, "offset": offset}
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Could not reach Airtable: {e}") from e

        self.logger.info(f"Listed {len(items)} Airtable records in {self.base_id}/{self.table_id}")
        return items

    async def _get_record(self, remote_id: str) -> Dict[str, Any]:
        try:
            async with self.http_client() as client:
                resp = await self._get_with_auth(client, f"{self._table_url}/{remote_id}")
        except httpx.HTTPError as e:
            raise FetchError(f"Could not reach Airtable: {e}") from e

        if resp.status_code == 404:
            raise ItemNotFoundError(remote_id)
        if resp.status_code >= 400:
            raise FetchError(f"Airtable returned status {resp.status_code} for {remote_id}")
        return resp.json()

    async def get_item(self, remote_id: str) -> RemoteItem:
        """Fetch fresh metadata for one record."""
        return self._to_remote_item(await self._get_record(remote_id))

    async def fetch_content(self, remote_id: str, mime_type: Optional[str]) -> FetchedContent:
        """Render the record's fields as indented JSON."""
        record = await self._get_record(remote_id)
        text = json.dumps(record.get("fields") or {}, indent=2, default=str)
        return FetchedContent(text=text[: settings.MAX_FETCH_CHARS], mime_type="application/json")
