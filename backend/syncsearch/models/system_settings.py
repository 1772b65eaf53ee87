"""System settings model."""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from syncsearch.models._base import Base


class SystemSettings(Base):
    """Deployment-wide settings; a single row."""

    __tablename__ = "system_settings"

    summarization_api_key: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    summary_model: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    completion_model: Mapped[Optional[str]] = mapped_column(String, nullable=True)
