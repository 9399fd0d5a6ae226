from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    ACTIVE = "active"
    SCANNED = "scanned"


class Booking(BaseModel):
    """A reservation subject to check-in. `id` is also the QR payload."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    fields: dict[str, Any] = Field(default_factory=dict)
    slot_time: Optional[datetime] = None
    status: BookingStatus = BookingStatus.ACTIVE
    created_at: datetime
    scanned_at: Optional[datetime] = None


class SlotCapacityConfig(BaseModel):
    max_bookings_per_slot: int = Field(10, gt=0)
    slot_duration_minutes: int = Field(60, gt=0)


class SystemSettingsValues(SlotCapacityConfig):
    advance_booking_days: int = Field(30, gt=0)
    email_notifications: bool = True

    @property
    def capacity(self) -> SlotCapacityConfig:
        return SlotCapacityConfig(
            max_bookings_per_slot=self.max_bookings_per_slot,
            slot_duration_minutes=self.slot_duration_minutes,
        )


class AvailabilityResult(BaseModel):
    available: bool
    current_count: int
    max: int
    within_advance_window: bool = True


class VerificationReason(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_SCANNED = "already_scanned"
    FUTURE_BOOKING = "future_booking"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"


class VerificationResult(BaseModel):
    valid: bool
    reason: VerificationReason
    data: Optional[Booking] = None
    scanned_at: Optional[datetime] = None

    @property
    def message(self) -> str:
        return VERIFICATION_MESSAGES[self.reason]


VERIFICATION_MESSAGES: dict[VerificationReason, str] = {
    VerificationReason.CONFIRMED: "Valid booking verified successfully",
    VerificationReason.ALREADY_SCANNED: "This booking has already been scanned",
    VerificationReason.FUTURE_BOOKING: "This booking is for a future date",
    VerificationReason.NOT_FOUND: "Invalid booking ID",
    VerificationReason.STORE_UNAVAILABLE: "Booking store is temporarily unavailable, retry the scan",
}


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    QUEUED = "queued"
    SKIPPED = "skipped"


class NotificationResult(BaseModel):
    status: NotificationStatus
    warning: Optional[str] = None


class SubmissionResult(BaseModel):
    booking: Booking
    availability: AvailabilityResult
    notification: NotificationResult
    qr_url: str


class BookingStats(BaseModel):
    total_bookings: int = 0
    today_bookings: int = 0
    scanned_today: int = 0
    pending_bookings: int = 0
