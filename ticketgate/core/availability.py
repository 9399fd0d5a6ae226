"""
Availability Engine — advisory slot capacity accounting.

Counts every booking (active or scanned) whose slot_time falls in the
half-open window [requested, requested + slot duration). The result is not
transactionally tied to the insert that may follow it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from ticketgate.core.exceptions import InvalidSlotTime
from ticketgate.core.schemas import AvailabilityResult, SlotCapacityConfig
from ticketgate.core.store import BookingStore
from ticketgate.core.timeutil import utcnow

logger = logging.getLogger(__name__)


def slot_window(requested: datetime, config: SlotCapacityConfig) -> tuple[datetime, datetime]:
    try:
        end = requested + timedelta(minutes=config.slot_duration_minutes)
        # Bounds are stored and compared in UTC.
        requested.astimezone(timezone.utc)
        end.astimezone(timezone.utc)
    except OverflowError as e:
        raise InvalidSlotTime(f"Slot time {requested.isoformat()} is out of range") from e
    return requested, end


class AvailabilityEngine:
    """
    Usage:
        engine = AvailabilityEngine(store)
        result = await engine.check_availability(slot_time, config)
    """

    def __init__(self, store: BookingStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def check_availability(
        self,
        requested: datetime | None,
        config: SlotCapacityConfig,
        advance_booking_days: int | None = None,
    ) -> AvailabilityResult:
        if requested is None:
            # Date-less schemas are not slot-accounted.
            return AvailabilityResult(available=True, current_count=0, max=config.max_bookings_per_slot)

        start, end = slot_window(requested, config)
        current = await self.store.count_in_range(start, end)

        within_window = True
        if advance_booking_days is not None:
            within_window = requested <= self.clock() + timedelta(days=advance_booking_days)

        result = AvailabilityResult(
            available=current < config.max_bookings_per_slot,
            current_count=current,
            max=config.max_bookings_per_slot,
            within_advance_window=within_window,
        )
        logger.debug(
            "Availability for [%s, %s): %s/%s available=%s",
            start.isoformat(),
            end.isoformat(),
            current,
            config.max_bookings_per_slot,
            result.available,
        )
        return result
