from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ticketgate.core.schemas import (
    AvailabilityResult,
    Booking,
    BookingStatus,
    NotificationResult,
    VerificationReason,
)


class BookingResponse(BaseModel):
    id: str
    fields: dict[str, Any]
    slot_time: Optional[datetime] = None
    status: BookingStatus
    created_at: datetime
    scanned_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id or "",
            fields=booking.fields,
            slot_time=booking.slot_time,
            status=booking.status,
            created_at=booking.created_at,
            scanned_at=booking.scanned_at,
        )


class BookingCreateRequest(BaseModel):
    fields: dict[str, Any] = Field(default_factory=dict)


class BookingCreateResponse(BaseModel):
    id: str
    booking: BookingResponse
    availability: AvailabilityResult
    notification: NotificationResult
    qr_url: str


class BookingPrefillResponse(BaseModel):
    id: str
    fields: dict[str, Any]
    date: Optional[str] = None


class VerifyRequest(BaseModel):
    token: str


class VerifyResponse(BaseModel):
    valid: bool
    reason: VerificationReason
    message: str
    data: Optional[BookingResponse] = None
    scanned_at: Optional[datetime] = None
    retryable: bool = False

