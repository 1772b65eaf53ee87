"""Synced item model."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from syncsearch.models._base import Base

if TYPE_CHECKING:
    from syncsearch.models.client import Client


class SyncedItem(Base):
    """Synced item model.

    Exactly one row per (client_id, remote_id); ``version`` is bumped on every
    update and checked by SQLAlchemy to detect concurrent writers.
    """

    __tablename__ = "synced_item"

    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("client.id", ondelete="CASCADE", name="fk_synced_item_client_id"),
        nullable=False,
    )
    remote_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    content_kind: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    status_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    remote_modified_at: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    client: Mapped["Client"] = relationship("Client", back_populates="synced_items", lazy="noload")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("client_id", "remote_id", name="uq_synced_item_client_id_remote_id"),
        Index("idx_synced_item_client_id", "client_id"),
    )
