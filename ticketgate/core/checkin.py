"""
Check-in State Machine — decides whether a scanned ticket is accepted.

States: active -> scanned (terminal). The scanned token is the booking id.

    1. lookup by id                         -> not_found        (no mutation)
    2. status == scanned                    -> already_scanned  (no mutation)
    3. active, slot_time in the future      -> future_booking   (no mutation)
    4. active, slot_time absent or reached  -> conditional update active -> scanned
         update applied                     -> confirmed
         update lost to a concurrent scan   -> re-read, already_scanned

The conditional update is the only mutation point, so at most one verify call
per booking can ever observe `confirmed`. Store errors surface as
StoreUnavailable; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ticketgate.core.schemas import Booking, BookingStatus, VerificationReason, VerificationResult
from ticketgate.core.store import BookingStore
from ticketgate.core.timeutil import utcnow

logger = logging.getLogger(__name__)


class CheckinStateMachine:
    def __init__(self, store: BookingStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def verify(self, scanned_id: str) -> VerificationResult:
        booking_id = (scanned_id or "").strip()
        if not booking_id:
            return self._not_found(scanned_id)

        booking = await self.store.get(booking_id)
        if booking is None:
            return self._not_found(booking_id)

        if booking.status == BookingStatus.SCANNED:
            return self._already_scanned(booking)

        now = self.clock()
        if booking.slot_time is not None and booking.slot_time > now:
            logger.info("Booking %s scanned before its slot %s", booking_id, booking.slot_time.isoformat())
            return VerificationResult(valid=False, reason=VerificationReason.FUTURE_BOOKING, data=booking)

        scanned_at = max(now, booking.created_at)
        applied = await self.store.compare_and_set_scanned(
            booking_id,
            scanned_at=scanned_at,
            expected_status=BookingStatus.ACTIVE,
        )
        if not applied:
            logger.info("Booking %s was consumed by a concurrent scan", booking_id)
            current = await self.store.get(booking_id)
            if current is None:
                return self._not_found(booking_id)
            return self._already_scanned(current)

        confirmed = booking.model_copy(update={"status": BookingStatus.SCANNED, "scanned_at": scanned_at})
        logger.info("Booking %s checked in at %s", booking_id, scanned_at.isoformat())
        return VerificationResult(
            valid=True,
            reason=VerificationReason.CONFIRMED,
            data=confirmed,
            scanned_at=scanned_at,
        )

    @staticmethod
    def _not_found(booking_id: str) -> VerificationResult:
        logger.info("Scanned token %r matches no booking", booking_id)
        return VerificationResult(valid=False, reason=VerificationReason.NOT_FOUND)

    @staticmethod
    def _already_scanned(booking: Booking) -> VerificationResult:
        logger.info("Booking %s presented again (first scan at %s)", booking.id, booking.scanned_at)
        return VerificationResult(
            valid=False,
            reason=VerificationReason.ALREADY_SCANNED,
            data=booking,
            scanned_at=booking.scanned_at,
        )
