"""
Booking Submission — sequencing only.

    (a) advisory availability check
    (b) build the booking: active, no scanned_at, created_at = now
    (c) insert into the store (the booking is confirmed from here on)
    (d) confirmation delivery, either inline or dispatched to a worker

Nothing after (c) can undo the booking; notification problems come back as
a warning on the result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from typing import Any

from ticketgate.core.availability import AvailabilityEngine
from ticketgate.core.exceptions import SlotUnavailable
from ticketgate.core.qr import qr_view_url
from ticketgate.core.schemas import (
    Booking,
    BookingStatus,
    NotificationResult,
    NotificationStatus,
    SubmissionResult,
    SystemSettingsValues,
)
from ticketgate.core.store import BookingStore
from ticketgate.core.timeutil import normalize_slot_time, utcnow
from ticketgate.integrations.base import Notifier

logger = logging.getLogger(__name__)


def extract_slot_value(fields: dict[str, Any]) -> Any:
    """Return the raw slot value of a submission: `date`, optionally joined with a separate `time`."""
    date_value = fields.get("date")
    time_value = fields.get("time")
    if isinstance(date_value, str) and isinstance(time_value, str) and time_value.strip():
        raw = date_value.strip()
        if raw and "T" not in raw and " " not in raw:
            return f"{raw}T{time_value.strip()}"
    return date_value


class BookingSubmission:
    """
    Usage:
        submission = BookingSubmission(store, notifier, public_base_url="https://tickets.example")
        result = await submission.submit({"fullName": "...", "email": "...", "date": "2026-03-01T10:00"}, settings)
    """

    def __init__(
        self,
        store: BookingStore,
        notifier: Notifier | None,
        public_base_url: str = "",
        tz: tzinfo = timezone.utc,
        enforce_capacity: bool = False,
        dispatch: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.notifier = notifier
        self.public_base_url = public_base_url
        self.tz = tz
        self.enforce_capacity = enforce_capacity
        self.dispatch = dispatch
        self.clock = clock
        self.availability = AvailabilityEngine(store, clock=clock)

    async def submit(self, fields: dict[str, Any], settings: SystemSettingsValues) -> SubmissionResult:
        slot_time = normalize_slot_time(extract_slot_value(fields), self.tz)

        availability = await self.availability.check_availability(
            slot_time,
            settings.capacity,
            advance_booking_days=settings.advance_booking_days,
        )
        if not availability.available:
            logger.warning(
                "Slot %s is at capacity (%s/%s)",
                slot_time.isoformat() if slot_time else "-",
                availability.current_count,
                availability.max,
            )
            if self.enforce_capacity:
                raise SlotUnavailable(availability.current_count, availability.max)

        booking = Booking(
            fields=dict(fields),
            slot_time=slot_time,
            status=BookingStatus.ACTIVE,
            created_at=self.clock(),
            scanned_at=None,
        )
        booking_id = await self.store.put(booking)
        booking = booking.model_copy(update={"id": booking_id})
        logger.info("Booking %s created (slot=%s)", booking_id, slot_time.isoformat() if slot_time else "-")

        notification = await self._notify(booking, booking_id, settings)
        return SubmissionResult(
            booking=booking,
            availability=availability,
            notification=notification,
            qr_url=qr_view_url(self.public_base_url, booking_id),
        )

    async def _notify(
        self,
        booking: Booking,
        booking_id: str,
        settings: SystemSettingsValues,
    ) -> NotificationResult:
        if not settings.email_notifications or not booking.fields.get("email"):
            return NotificationResult(status=NotificationStatus.SKIPPED)

        if self.dispatch is not None:
            try:
                self.dispatch(booking_id)
            except Exception as e:
                logger.warning("Could not queue confirmation for booking %s: %s", booking_id, e)
                return NotificationResult(
                    status=NotificationStatus.FAILED,
                    warning="Booking confirmed but email delivery failed.",
                )
            return NotificationResult(status=NotificationStatus.QUEUED)

        if self.notifier is None:
            return NotificationResult(status=NotificationStatus.SKIPPED)

        try:
            result = await self.notifier.send(booking, booking_id)
        except Exception as e:
            logger.warning("Confirmation for booking %s failed: %s", booking_id, e)
            return NotificationResult(
                status=NotificationStatus.FAILED,
                warning="Booking confirmed but email delivery failed.",
            )

        if result.status == NotificationStatus.FAILED and not result.warning:
            return NotificationResult(
                status=NotificationStatus.FAILED,
                warning="Booking confirmed but email delivery failed.",
            )
        return result
