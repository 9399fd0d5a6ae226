"""
Booking Store — durable keyed storage of booking records.

The check-in core depends only on the `BookingStore` interface. The one hard
concurrency requirement lives in `compare_and_set_scanned`: it must apply the
Active -> Scanned transition atomically and only when the record still holds
the expected prior status.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketgate.core import crud
from ticketgate.core.exceptions import StoreUnavailable
from ticketgate.core.schemas import Booking, BookingStats, BookingStatus
from ticketgate.core.timeutil import as_aware
from ticketgate.models import BookingRecord
from ticketgate.models.base import new_id

logger = logging.getLogger(__name__)


class BookingStore(ABC):
    """Persistence contract consumed by the availability, check-in and submission flows."""

    @abstractmethod
    async def get(self, booking_id: str) -> Booking | None:
        """Point lookup. Returns None when no record has this id."""

    @abstractmethod
    async def put(self, booking: Booking) -> str:
        """Insert a new booking, assigning an id when the booking has none. Returns the id."""

    @abstractmethod
    async def compare_and_set_scanned(
        self,
        booking_id: str,
        scanned_at: datetime,
        expected_status: BookingStatus = BookingStatus.ACTIVE,
    ) -> bool:
        """
        Atomically set status=scanned and scanned_at, only if the current status
        equals `expected_status`.

        Returns True only when this call applied the transition. Retrying is
        safe: once applied, the precondition fails and scanned_at is never
        overwritten.
        """

    @abstractmethod
    async def count_in_range(self, start: datetime, end: datetime) -> int:
        """Count bookings of any status whose slot_time falls in [start, end)."""

    @abstractmethod
    async def list_bookings(
        self,
        slot_range: tuple[datetime, datetime] | None = None,
        status: BookingStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Booking]:
        """Newest-first listing, optionally filtered by slot interval and status."""

    @abstractmethod
    async def stats(self, day_start: datetime, day_end: datetime) -> BookingStats:
        """Dashboard counts for the day [day_start, day_end)."""


def _in_range(value: datetime | None, start: datetime, end: datetime) -> bool:
    return value is not None and start <= value < end


class MemoryBookingStore(BookingStore):
    """
    In-process store, used by the test suite.

    Reads never take the lock; only the conditional update does, so a verify
    call is never serialized as a whole.
    """

    def __init__(self) -> None:
        self._records: dict[str, Booking] = {}
        self._lock = asyncio.Lock()

    async def get(self, booking_id: str) -> Booking | None:
        # Yield so concurrent callers interleave like they would against a remote store.
        await asyncio.sleep(0)
        return self._records.get(booking_id)

    async def put(self, booking: Booking) -> str:
        booking_id = booking.id or new_id()
        async with self._lock:
            if booking_id in self._records:
                raise ValueError(f"Booking {booking_id} already exists")
            self._records[booking_id] = booking.model_copy(update={"id": booking_id})
        return booking_id

    async def compare_and_set_scanned(
        self,
        booking_id: str,
        scanned_at: datetime,
        expected_status: BookingStatus = BookingStatus.ACTIVE,
    ) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            current = self._records.get(booking_id)
            if current is None:
                return False
            if current.status != expected_status:
                return False
            self._records[booking_id] = current.model_copy(
                update={"status": BookingStatus.SCANNED, "scanned_at": scanned_at}
            )
            return True

    async def count_in_range(self, start: datetime, end: datetime) -> int:
        return sum(1 for b in self._records.values() if _in_range(b.slot_time, start, end))

    async def list_bookings(
        self,
        slot_range: tuple[datetime, datetime] | None = None,
        status: BookingStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Booking]:
        items = list(self._records.values())
        if slot_range is not None:
            items = [b for b in items if _in_range(b.slot_time, *slot_range)]
        if status is not None:
            items = [b for b in items if b.status == status]
        items.sort(key=lambda b: b.created_at, reverse=True)
        return items[offset : offset + limit]

    async def stats(self, day_start: datetime, day_end: datetime) -> BookingStats:
        records = list(self._records.values())
        return BookingStats(
            total_bookings=len(records),
            today_bookings=sum(1 for b in records if _in_range(b.created_at, day_start, day_end)),
            scanned_today=sum(1 for b in records if _in_range(b.scanned_at, day_start, day_end)),
            pending_bookings=sum(1 for b in records if b.status == BookingStatus.ACTIVE),
        )


def _utc(value: datetime | None) -> datetime | None:
    # Backends without timezone support would keep the wall time and drop the offset.
    return value.astimezone(timezone.utc) if value is not None else None


def record_to_booking(record: BookingRecord) -> Booking:
    # Backends without timezone support hand back naive UTC values.
    return Booking(
        id=record.id,
        fields=dict(record.fields or {}),
        slot_time=as_aware(record.slot_time, timezone.utc) if record.slot_time else None,
        status=BookingStatus(record.status),
        created_at=as_aware(record.created_at, timezone.utc),
        scanned_at=as_aware(record.scanned_at, timezone.utc) if record.scanned_at else None,
    )


class SqlBookingStore(BookingStore):
    """
    SQLAlchemy-backed store. Each operation runs in its own short session and
    commits before returning; the check-in CAS is one conditional UPDATE.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def get(self, booking_id: str) -> Booking | None:
        try:
            async with self._session_factory() as db:
                record = await crud.get_booking(db, booking_id)
                return record_to_booking(record) if record is not None else None
        except SQLAlchemyError as e:
            logger.exception("Booking lookup failed for %s", booking_id)
            raise StoreUnavailable("get", str(e)) from e

    async def put(self, booking: Booking) -> str:
        booking_id = booking.id or new_id()
        try:
            async with self._session_factory() as db:
                await crud.insert_booking(
                    db,
                    booking_id=booking_id,
                    fields=dict(booking.fields),
                    slot_time=_utc(booking.slot_time),
                    created_at=_utc(booking.created_at),
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.exception("Booking insert failed")
            raise StoreUnavailable("put", str(e)) from e
        return booking_id

    async def compare_and_set_scanned(
        self,
        booking_id: str,
        scanned_at: datetime,
        expected_status: BookingStatus = BookingStatus.ACTIVE,
    ) -> bool:
        try:
            async with self._session_factory() as db:
                changed = await crud.mark_scanned_if_active(
                    db, booking_id, _utc(scanned_at), expected_status=expected_status.value
                )
                await db.commit()
                return changed
        except SQLAlchemyError as e:
            logger.exception("Conditional scan update failed for %s", booking_id)
            raise StoreUnavailable("compare_and_set_scanned", str(e)) from e

    async def count_in_range(self, start: datetime, end: datetime) -> int:
        try:
            async with self._session_factory() as db:
                return await crud.count_bookings_in_range(db, _utc(start), _utc(end))
        except SQLAlchemyError as e:
            logger.exception("Slot count failed for [%s, %s)", start, end)
            raise StoreUnavailable("count_in_range", str(e)) from e

    async def list_bookings(
        self,
        slot_range: tuple[datetime, datetime] | None = None,
        status: BookingStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Booking]:
        try:
            async with self._session_factory() as db:
                records = await crud.list_bookings(
                    db,
                    slot_range=(_utc(slot_range[0]), _utc(slot_range[1])) if slot_range else None,
                    status=status.value if status else None,
                    limit=limit,
                    offset=offset,
                )
                return [record_to_booking(r) for r in records]
        except SQLAlchemyError as e:
            logger.exception("Booking listing failed")
            raise StoreUnavailable("list", str(e)) from e

    async def stats(self, day_start: datetime, day_end: datetime) -> BookingStats:
        day_start, day_end = _utc(day_start), _utc(day_end)
        try:
            async with self._session_factory() as db:
                return BookingStats(
                    total_bookings=await crud.count_bookings(db),
                    today_bookings=await crud.count_bookings(
                        db, BookingRecord.created_at >= day_start, BookingRecord.created_at < day_end
                    ),
                    scanned_today=await crud.count_bookings(
                        db, BookingRecord.scanned_at >= day_start, BookingRecord.scanned_at < day_end
                    ),
                    pending_bookings=await crud.count_bookings(
                        db, BookingRecord.status == BookingStatus.ACTIVE.value
                    ),
                )
        except SQLAlchemyError as e:
            logger.exception("Booking stats failed")
            raise StoreUnavailable("stats", str(e)) from e
