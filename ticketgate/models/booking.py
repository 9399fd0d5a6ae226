from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from ticketgate.models.base import Base, StringIDMixin


class BookingRecord(StringIDMixin, Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(
            "(status = 'scanned') = (scanned_at IS NOT NULL)",
            name="ck_bookings_scanned_at_matches_status",
        ),
        CheckConstraint("status IN ('active', 'scanned')", name="ck_bookings_status"),
        Index("ix_bookings_slot_time", "slot_time"),
        Index("ix_bookings_status", "status"),
        Index("ix_bookings_created_at", "created_at"),
    )

    fields: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=dict, nullable=False)
    slot_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scanned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
