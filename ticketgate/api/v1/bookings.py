from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ticketgate.config import Settings, get_settings
from ticketgate.core.exceptions import InvalidSlotTime, SlotUnavailable
from ticketgate.core.schemas import BookingStatus
from ticketgate.core.store import BookingStore
from ticketgate.core.submission import BookingSubmission
from ticketgate.core.system_settings import SystemSettingsStore
from ticketgate.core.timeutil import day_bounds, get_zone

from .deps import get_booking_store, get_settings_store, get_submission, require_operator
from .schemas import BookingCreateRequest, BookingCreateResponse, BookingPrefillResponse, BookingResponse


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    submission: BookingSubmission = Depends(get_submission),
    settings_store: SystemSettingsStore = Depends(get_settings_store),
) -> BookingCreateResponse:
    try:
        system_settings = await settings_store.load()
        result = await submission.submit(payload.fields, system_settings)
    except InvalidSlotTime as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    except SlotUnavailable as e:
        logger.info("Submission rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": "slot_unavailable", "current_count": e.current_count, "max": e.max_count},
        ) from e

    return BookingCreateResponse(
        id=result.booking.id or "",
        booking=BookingResponse.from_booking(result.booking),
        availability=result.availability,
        notification=result.notification,
        qr_url=result.qr_url,
    )


@router.get("", response_model=list[BookingResponse], dependencies=[Depends(require_operator)])
async def list_bookings(
    day: date | None = Query(default=None, alias="date"),
    booking_status: BookingStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
) -> list[BookingResponse]:
    slot_range = day_bounds(day, get_zone(settings.timezone)) if day else None
    bookings = await store.list_bookings(slot_range=slot_range, status=booking_status, limit=limit, offset=offset)
    return [BookingResponse.from_booking(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingPrefillResponse)
async def get_booking(
    booking_id: str,
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
) -> BookingPrefillResponse:
    """Form fields of an existing booking, for pre-filling a new submission."""
    booking = await store.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")

    date_value = None
    if booking.slot_time is not None:
        date_value = booking.slot_time.astimezone(get_zone(settings.timezone)).strftime("%Y-%m-%dT%H:%M")

    fields = dict(booking.fields)
    for internal in ("createdAt", "scanned", "scannedAt", "status"):
        fields.pop(internal, None)
    if date_value is not None:
        fields["date"] = date_value

    return BookingPrefillResponse(id=booking_id, fields=fields, date=date_value)
