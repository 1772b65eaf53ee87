# flake8: noqa: F401
"""Schemas for the application."""

from .client import Client, ClientCreate, ClientUpdate, Tag, TagCreate
from .data_editor import ApplyEditRequest, EditPlan, EditPlanRequest
from .search import ItemSearchResult, QueryRequest, QueryResponse, SyncRequest
from .source_config import (
    FolderSourceConfig,
    SourceConfig,
    TableSourceConfig,
    get_folder_id_from_url,
)
from .sync_events import (
    InitialList,
    InitialListEntry,
    ItemUpdate,
    ProgressCallback,
    SyncEvent,
)
from .synced_item import (
    ChangeSet,
    FetchedContent,
    RemoteItem,
    SyncedItem,
    merge_item,
    to_remote_item,
)
from .system_settings import SystemSettings, SystemSettingsUpdate
