from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ticketgate.config import Settings, get_settings
from ticketgate.core.availability import AvailabilityEngine
from ticketgate.core.exceptions import InvalidSlotTime
from ticketgate.core.schemas import AvailabilityResult
from ticketgate.core.store import BookingStore
from ticketgate.core.system_settings import SystemSettingsStore
from ticketgate.core.timeutil import get_zone, normalize_slot_time

from .deps import get_booking_store, get_settings_store


router = APIRouter(prefix="/api/v1/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResult)
async def check_availability(
    at: str | None = Query(default=None, description="ISO date or date-time of the requested slot"),
    store: BookingStore = Depends(get_booking_store),
    settings_store: SystemSettingsStore = Depends(get_settings_store),
    settings: Settings = Depends(get_settings),
) -> AvailabilityResult:
    try:
        requested = normalize_slot_time(at, get_zone(settings.timezone))
    except InvalidSlotTime as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    system_settings = await settings_store.load()
    try:
        return await AvailabilityEngine(store).check_availability(
            requested,
            system_settings.capacity,
            advance_booking_days=system_settings.advance_booking_days,
        )
    except InvalidSlotTime as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
