"""Shared enums used by schemas, models and the sync engine."""

from enum import Enum


class ItemStatus(str, Enum):
    """Lifecycle status of a synced item."""

    IDLE = "idle"
    SYNCING = "syncing"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceKind(str, Enum):
    """Kind of remote source an item comes from."""

    FOLDER = "folder"
    TABLE = "table"


class ContentKind(str, Enum):
    """Kind of content held by a synced item."""

    DOCUMENT = "document"
    TABULAR = "tabular"
    IMAGE = "image"
    RECORD = "record"


class SyncMode(str, Enum):
    """How a source is reconciled during a pass."""

    FULL = "full"
    INCREMENTAL = "incremental"


class SyncTrigger(str, Enum):
    """What started a sync."""

    MANUAL = "manual"
    AUTO = "auto"
    SEARCH = "search"
    SINGLE_ITEM = "single_item"
