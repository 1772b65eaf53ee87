"""Source configuration schemas.

A client holds at most one configuration per source kind. Configurations are
stored as JSON on the client row and discriminated by ``kind``.
"""

import re
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from syncsearch.core.datetime_utils import ensure_utc, utc_now

_FOLDER_URL_PATTERNS = (
    re.compile(r"folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"drive/[a-z]+/([a-zA-Z0-9_-]+)"),
)
_BARE_FOLDER_ID = re.compile(r"^[a-zA-Z0-9_-]{10,}$")


def get_folder_id_from_url(url: str) -> Optional[str]:
    """Extract a Drive folder id from a share URL (or accept a bare id).

    >>> get_folder_id_from_url("https://drive.google.com/drive/folders/1AbC_d-EfG?usp=sharing")
    '1AbC_d-EfG'
    """
    if not url:
        return None
    url = url.strip()
    for pattern in _FOLDER_URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    if _BARE_FOLDER_ID.match(url):
        return url
    return None


class FolderSourceConfig(BaseModel):
    """Google Drive folder source."""

    kind: Literal["folder"] = "folder"
    folder_url: str = Field(..., description="Share URL (or id) of the Drive folder to sync")
    access_token: Optional[str] = Field(None, repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)

    @field_validator("folder_url")
    def validate_folder_url(cls, v: str) -> str:
        """Reject URLs no folder id can be extracted from."""
        if not get_folder_id_from_url(v):
            raise ValueError("Invalid Google Drive folder URL")
        return v.strip()

    @property
    def folder_id(self) -> str:
        """The Drive folder id."""
        return get_folder_id_from_url(self.folder_url)

    def has_credentials(self) -> bool:
        """Whether any token usable against the Drive API is configured."""
        return bool(self.access_token or self.refresh_token)


class TableSourceConfig(BaseModel):
    """Airtable base/table source."""

    kind: Literal["table"] = "table"
    base_id: str = Field(..., min_length=1)
    table_id: str = Field(..., min_length=1)
    access_token: Optional[str] = Field(None, repr=False, description="OAuth access token")
    token_expires_at: Optional[datetime] = None
    personal_access_token: Optional[str] = Field(
        None, repr=False, description="Fallback personal access token"
    )

    def oauth_token_expired(self) -> bool:
        """Whether the OAuth access token is past its expiry."""
        if not self.token_expires_at:
            return False
        return ensure_utc(self.token_expires_at) <= utc_now()

    def has_credentials(self) -> bool:
        """Whether any token usable against the Airtable API is configured."""
        return bool(self.access_token or self.personal_access_token)


SourceConfig = Annotated[
    Union[FolderSourceConfig, TableSourceConfig], Field(discriminator="kind")
]
