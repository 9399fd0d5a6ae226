from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ticketgate.core.checkin import CheckinStateMachine
from ticketgate.core.schemas import Booking, BookingStatus, VerificationReason
from ticketgate.core.store import SqlBookingStore
from ticketgate.models import Base, BookingRecord

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
CET = timezone(timedelta(hours=1))


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


def _booking(slot_time: datetime | None = None) -> Booking:
    return Booking(
        fields={"fullName": "Ada Lovelace", "email": "ada@example.com"},
        slot_time=slot_time,
        created_at=datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_concurrent_verifies_confirm_exactly_once(session_factory):
    store = SqlBookingStore(session_factory)
    booking_id = await store.put(_booking(slot_time=NOW - timedelta(hours=1)))
    machine = CheckinStateMachine(store, clock=lambda: NOW)

    results = await asyncio.gather(*(machine.verify(booking_id) for _ in range(5)))

    reasons = sorted(r.reason.value for r in results)
    assert reasons == ["already_scanned"] * 4 + ["confirmed"]
    stored = await store.get(booking_id)
    assert stored.status == BookingStatus.SCANNED
    assert stored.scanned_at == NOW
    assert all(r.scanned_at == NOW for r in results)


@pytest.mark.asyncio
async def test_conditional_update_never_overwrites_scan_time(session_factory):
    store = SqlBookingStore(session_factory)
    booking_id = await store.put(_booking())

    assert await store.compare_and_set_scanned(booking_id, NOW) is True
    assert await store.compare_and_set_scanned(booking_id, NOW + timedelta(hours=1)) is False
    assert await store.compare_and_set_scanned("missing", NOW) is False

    assert (await store.get(booking_id)).scanned_at == NOW
    result = await CheckinStateMachine(store, clock=lambda: NOW + timedelta(hours=2)).verify(booking_id)
    assert result.reason == VerificationReason.ALREADY_SCANNED
    assert result.scanned_at == NOW


@pytest.mark.asyncio
async def test_offset_instants_are_stored_as_utc(session_factory):
    store = SqlBookingStore(session_factory)
    booking_id = await store.put(_booking(slot_time=datetime(2026, 3, 1, 10, 0, tzinfo=CET)))

    stored = await store.get(booking_id)
    assert stored.slot_time == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    window_start = datetime(2026, 3, 1, 10, 0, tzinfo=CET)
    assert await store.count_in_range(window_start, window_start + timedelta(hours=1)) == 1
    assert await store.count_in_range(NOW, NOW + timedelta(hours=1)) == 0


@pytest.mark.asyncio
async def test_listing_and_stats(session_factory):
    store = SqlBookingStore(session_factory)
    first = await store.put(_booking(slot_time=datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)))
    await store.put(_booking(slot_time=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)))
    await store.compare_and_set_scanned(first, NOW)

    day = (datetime(2026, 3, 1, tzinfo=timezone.utc), datetime(2026, 3, 2, tzinfo=timezone.utc))
    assert [b.id for b in await store.list_bookings(slot_range=day)] == [first]
    assert [b.id for b in await store.list_bookings(status=BookingStatus.SCANNED)] == [first]

    stats = await store.stats(*day)
    assert stats.total_bookings == 2
    assert stats.scanned_today == 1
    assert stats.pending_bookings == 1


@pytest.mark.asyncio
async def test_scanned_status_requires_scan_time(session_factory):
    async with session_factory() as db:
        db.add(
            BookingRecord(
                id="b-1",
                fields={},
                status="scanned",
                created_at=NOW,
                scanned_at=None,
            )
        )
        with pytest.raises(IntegrityError):
            await db.commit()
