"""
System settings — operator-editable capacity and notification settings.

Stored values override the environment defaults key by key.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketgate.config import Settings
from ticketgate.core import crud
from ticketgate.core.exceptions import StoreUnavailable
from ticketgate.core.schemas import SystemSettingsValues

logger = logging.getLogger(__name__)


def defaults_from(settings: Settings) -> dict:
    return {
        "max_bookings_per_slot": settings.default_max_bookings_per_slot,
        "slot_duration_minutes": settings.default_slot_duration_minutes,
        "advance_booking_days": settings.default_advance_booking_days,
        "email_notifications": settings.default_email_notifications,
    }


def merge_settings(defaults: dict, stored: dict) -> SystemSettingsValues:
    known = set(SystemSettingsValues.model_fields)
    merged = dict(defaults)
    merged.update({k: v for k, v in (stored or {}).items() if k in known and v is not None})
    return SystemSettingsValues.model_validate(merged)


class SystemSettingsStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession],
        defaults: dict,
    ):
        self._session_factory = session_factory
        self.defaults = defaults

    async def load(self) -> SystemSettingsValues:
        try:
            async with self._session_factory() as db:
                stored = await crud.get_system_settings(db)
        except SQLAlchemyError as e:
            logger.exception("Failed to load system settings")
            raise StoreUnavailable("load_settings", str(e)) from e
        return merge_settings(self.defaults, stored)

    async def save(self, values: SystemSettingsValues) -> SystemSettingsValues:
        try:
            async with self._session_factory() as db:
                stored = await crud.save_system_settings(db, values.model_dump())
                await db.commit()
        except SQLAlchemyError as e:
            logger.exception("Failed to save system settings")
            raise StoreUnavailable("save_settings", str(e)) from e
        logger.info("System settings updated: %s", stored)
        return merge_settings(self.defaults, stored)
