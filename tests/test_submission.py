from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from ticketgate.core.exceptions import InvalidSlotTime, NotifierFailure, SlotUnavailable
from ticketgate.core.schemas import BookingStatus, NotificationResult, NotificationStatus, SystemSettingsValues
from ticketgate.core.store import MemoryBookingStore
from ticketgate.core.submission import BookingSubmission, extract_slot_value

NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
SETTINGS = SystemSettingsValues(max_bookings_per_slot=1, slot_duration_minutes=60)
FIELDS = {"fullName": "Ada Lovelace", "email": "ada@example.com", "date": "2026-03-01T10:00"}


def _notifier(result: NotificationResult | None = None, error: Exception | None = None) -> MagicMock:
    notifier = MagicMock()
    notifier.send = AsyncMock(
        return_value=result or NotificationResult(status=NotificationStatus.SENT),
        side_effect=error,
    )
    return notifier


def test_extract_slot_value_joins_separate_time():
    assert extract_slot_value({"date": "2026-03-01", "time": "10:30"}) == "2026-03-01T10:30"
    assert extract_slot_value({"date": "2026-03-01T09:00", "time": "10:30"}) == "2026-03-01T09:00"
    assert extract_slot_value({"date": "2026-03-01"}) == "2026-03-01"
    assert extract_slot_value({}) is None


@pytest.mark.asyncio
async def test_submit_persists_active_booking_and_notifies():
    store = MemoryBookingStore()
    notifier = _notifier()
    submission = BookingSubmission(store, notifier, public_base_url="https://tickets.example", clock=lambda: NOW)

    result = await submission.submit(dict(FIELDS), SETTINGS)

    booking_id = result.booking.id
    stored = await store.get(booking_id)
    assert stored.status == BookingStatus.ACTIVE
    assert stored.scanned_at is None
    assert stored.created_at == NOW
    assert stored.slot_time == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert result.availability.available is True
    assert result.notification.status == NotificationStatus.SENT
    assert result.qr_url == f"https://tickets.example/qr/{booking_id}"
    notifier.send.assert_awaited_once()
    assert notifier.send.await_args.args[1] == booking_id


@pytest.mark.asyncio
async def test_notifier_exception_keeps_booking():
    store = MemoryBookingStore()
    submission = BookingSubmission(store, _notifier(error=NotifierFailure("smtp down")), clock=lambda: NOW)

    result = await submission.submit(dict(FIELDS), SETTINGS)

    assert result.notification.status == NotificationStatus.FAILED
    assert result.notification.warning == "Booking confirmed but email delivery failed."
    assert await store.get(result.booking.id) is not None


@pytest.mark.asyncio
async def test_failed_result_without_warning_gets_default_warning():
    notifier = _notifier(NotificationResult(status=NotificationStatus.FAILED))
    result = await BookingSubmission(MemoryBookingStore(), notifier).submit(dict(FIELDS), SETTINGS)
    assert result.notification.warning == "Booking confirmed but email delivery failed."


@pytest.mark.asyncio
async def test_notifications_disabled_or_no_email_are_skipped():
    notifier = _notifier()
    submission = BookingSubmission(MemoryBookingStore(), notifier)

    disabled = SETTINGS.model_copy(update={"email_notifications": False})
    first = await submission.submit(dict(FIELDS), disabled)
    second = await submission.submit({"fullName": "No Mail"}, SETTINGS)

    assert first.notification.status == NotificationStatus.SKIPPED
    assert second.notification.status == NotificationStatus.SKIPPED
    notifier.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_queues_confirmation():
    dispatched: list[str] = []
    notifier = _notifier()
    submission = BookingSubmission(MemoryBookingStore(), notifier, dispatch=dispatched.append)

    result = await submission.submit(dict(FIELDS), SETTINGS)

    assert result.notification.status == NotificationStatus.QUEUED
    assert dispatched == [result.booking.id]
    notifier.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_failure_is_a_warning():
    def broken(_booking_id: str) -> None:
        raise ConnectionError("redis unreachable")

    store = MemoryBookingStore()
    result = await BookingSubmission(store, None, dispatch=broken).submit(dict(FIELDS), SETTINGS)

    assert result.notification.status == NotificationStatus.FAILED
    assert await store.get(result.booking.id) is not None


@pytest.mark.asyncio
async def test_full_slot_is_advisory_by_default():
    store = MemoryBookingStore()
    submission = BookingSubmission(store, None, clock=lambda: NOW)

    await submission.submit(dict(FIELDS), SETTINGS)
    second = await submission.submit(dict(FIELDS), SETTINGS)

    assert second.availability.available is False
    assert second.availability.current_count == 1
    assert await store.count_in_range(
        datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc), datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
    ) == 2


@pytest.mark.asyncio
async def test_full_slot_rejected_when_enforced():
    store = MemoryBookingStore()
    submission = BookingSubmission(store, None, enforce_capacity=True, clock=lambda: NOW)

    await submission.submit(dict(FIELDS), SETTINGS)
    with pytest.raises(SlotUnavailable) as exc:
        await submission.submit(dict(FIELDS), SETTINGS)

    assert exc.value.current_count == 1
    assert exc.value.max_count == 1
    assert len(await store.list_bookings()) == 1


@pytest.mark.asyncio
async def test_dateless_submission():
    result = await BookingSubmission(MemoryBookingStore(), None).submit({"fullName": "Ada"}, SETTINGS)
    assert result.booking.slot_time is None
    assert result.availability.available is True


@pytest.mark.asyncio
async def test_unparseable_date_is_rejected_before_insert():
    store = MemoryBookingStore()
    with pytest.raises(InvalidSlotTime):
        await BookingSubmission(store, None).submit({"date": "next tuesday"}, SETTINGS)
    assert await store.list_bookings() == []


@pytest.mark.asyncio
async def test_out_of_range_slot_is_rejected_before_insert():
    store = MemoryBookingStore()
    with pytest.raises(InvalidSlotTime):
        await BookingSubmission(store, None).submit({"date": "9999-12-31T23:30"}, SETTINGS)
    assert await store.list_bookings() == []
