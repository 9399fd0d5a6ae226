from __future__ import annotations

from fastapi import APIRouter, Depends

from ticketgate.config import Settings, get_settings
from ticketgate.core.schemas import BookingStats
from ticketgate.core.store import BookingStore
from ticketgate.core.timeutil import day_bounds, get_zone, utcnow

from .deps import get_booking_store, require_operator


router = APIRouter(prefix="/api/v1/stats", tags=["stats"], dependencies=[Depends(require_operator)])


@router.get("", response_model=BookingStats)
async def get_stats(
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
) -> BookingStats:
    """Dashboard counts: total, created today, scanned today, still pending."""
    tz = get_zone(settings.timezone)
    today = utcnow().astimezone(tz).date()
    return await store.stats(*day_bounds(today, tz))
