"""CRUD operations for the application."""

from .crud_client import client
from .crud_synced_item import synced_item
from .crud_system_settings import system_settings
from .crud_tag import tag

__all__ = ["client", "synced_item", "system_settings", "tag"]
