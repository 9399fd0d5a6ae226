from __future__ import annotations

from fastapi import APIRouter, Depends

from ticketgate.core.schemas import SystemSettingsValues
from ticketgate.core.system_settings import SystemSettingsStore

from .deps import get_settings_store, require_operator


router = APIRouter(prefix="/api/v1/settings", tags=["settings"], dependencies=[Depends(require_operator)])


@router.get("", response_model=SystemSettingsValues)
async def get_system_settings(
    settings_store: SystemSettingsStore = Depends(get_settings_store),
) -> SystemSettingsValues:
    return await settings_store.load()


@router.put("", response_model=SystemSettingsValues)
async def update_system_settings(
    payload: SystemSettingsValues,
    settings_store: SystemSettingsStore = Depends(get_settings_store),
) -> SystemSettingsValues:
    """Replace capacity and notification settings; applies to the next submission."""
    return await settings_store.save(payload)
