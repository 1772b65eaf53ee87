"""CRUD operations for the system settings row."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from syncsearch.crud._base import CRUDBase
from syncsearch.models.system_settings import SystemSettings
from syncsearch.schemas.system_settings import SystemSettingsUpdate


class CRUDSystemSettings(CRUDBase[SystemSettings, SystemSettingsUpdate, SystemSettingsUpdate]):
    """CRUD operations for the single system settings row."""

    async def get_current(self, db: AsyncSession) -> Optional[SystemSettings]:
        """Get the settings row, if it was ever saved."""
        result = await db.execute(select(SystemSettings).order_by(SystemSettings.created_at).limit(1))
        return result.scalar_one_or_none()

    async def save(self, db: AsyncSession, obj_in: SystemSettingsUpdate) -> SystemSettings:
        """Create or update the settings row."""
        db_obj = await self.get_current(db)
        if db_obj is None:
            return await self.create(db, obj_in=obj_in)
        return await self.update(db, db_obj=db_obj, obj_in=obj_in)


system_settings = CRUDSystemSettings(SystemSettings)
