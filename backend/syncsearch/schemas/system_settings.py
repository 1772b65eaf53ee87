"""System-wide settings stored in the database."""

from typing import Optional

from pydantic import BaseModel, Field


class SystemSettingsBase(BaseModel):
    """Base schema for SystemSettings."""

    summarization_api_key: Optional[str] = Field(None, repr=False)
    summary_model: Optional[str] = None
    completion_model: Optional[str] = None


class SystemSettingsUpdate(SystemSettingsBase):
    """Schema for updating SystemSettings."""

    pass


class SystemSettings(SystemSettingsBase):
    """Schema for SystemSettings."""

    class Config:
        """Pydantic config for SystemSettings."""

        from_attributes = True
