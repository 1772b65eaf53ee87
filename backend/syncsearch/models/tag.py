"""Tag model."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from syncsearch.models._base import Base

if TYPE_CHECKING:
    from syncsearch.models.client import Client


class Tag(Base):
    """Free-form client label, unique per client by name."""

    __tablename__ = "tag"

    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("client.id", ondelete="CASCADE", name="fk_tag_client_id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    client: Mapped["Client"] = relationship("Client", back_populates="tags", lazy="noload")

    __table_args__ = (UniqueConstraint("client_id", "name", name="uq_tag_client_id_name"),)
