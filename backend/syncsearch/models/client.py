"""Client model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from syncsearch.models._base import Base

if TYPE_CHECKING:
    from syncsearch.models.synced_item import SyncedItem
    from syncsearch.models.tag import Tag


class Client(Base):
    """Client model."""

    __tablename__ = "client"

    name: Mapped[str] = mapped_column(String, nullable=False)
    api_key: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    auto_sync_interval_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    telegram_bot_token: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    telegram_allowed_chat_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    sync_cursor: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        back_populates="client",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    synced_items: Mapped[List["SyncedItem"]] = relationship(
        "SyncedItem",
        back_populates="client",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
