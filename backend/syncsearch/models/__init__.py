"""Models for the application."""

from .client import Client
from .synced_item import SyncedItem
from .system_settings import SystemSettings
from .tag import Tag

__all__ = ["Client", "SyncedItem", "SystemSettings", "Tag"]
