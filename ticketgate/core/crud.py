from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from ticketgate.models import BookingRecord, SystemSettingsRecord

SYSTEM_SETTINGS_ID = "form-settings"


async def get_booking(db: AsyncSession, booking_id: str) -> BookingRecord | None:
    result = await db.execute(select(BookingRecord).where(BookingRecord.id == booking_id))
    return result.scalar_one_or_none()


async def insert_booking(
    db: AsyncSession,
    booking_id: str,
    fields: dict,
    slot_time: datetime | None,
    created_at: datetime,
) -> BookingRecord:
    record = BookingRecord(
        id=booking_id,
        fields=fields,
        slot_time=slot_time,
        status="active",
        created_at=created_at,
        scanned_at=None,
    )
    db.add(record)
    await db.flush()
    return record


async def mark_scanned_if_active(
    db: AsyncSession,
    booking_id: str,
    scanned_at: datetime,
    expected_status: str = "active",
) -> bool:
    """Single conditional UPDATE; True only if this statement changed the row."""
    result = await db.execute(
        update(BookingRecord)
        .where(BookingRecord.id == booking_id, BookingRecord.status == expected_status)
        .values(status="scanned", scanned_at=scanned_at)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


async def count_bookings_in_range(db: AsyncSession, start: datetime, end: datetime) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(BookingRecord)
        .where(BookingRecord.slot_time >= start, BookingRecord.slot_time < end)
    )
    return int(result.scalar_one() or 0)


async def list_bookings(
    db: AsyncSession,
    slot_range: tuple[datetime, datetime] | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[BookingRecord]:
    query = select(BookingRecord)
    if slot_range is not None:
        start, end = slot_range
        query = query.where(BookingRecord.slot_time >= start, BookingRecord.slot_time < end)
    if status:
        query = query.where(BookingRecord.status == status)
    query = query.order_by(BookingRecord.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_bookings(db: AsyncSession, *conditions: Any) -> int:
    query = select(func.count()).select_from(BookingRecord)
    if conditions:
        query = query.where(*conditions)
    result = await db.execute(query)
    return int(result.scalar_one() or 0)


async def get_system_settings(db: AsyncSession) -> dict:
    result = await db.execute(select(SystemSettingsRecord).where(SystemSettingsRecord.id == SYSTEM_SETTINGS_ID))
    record = result.scalar_one_or_none()
    if record is None or not isinstance(record.values, dict):
        return {}
    return dict(record.values)


async def save_system_settings(db: AsyncSession, values: dict) -> dict:
    """Merge top-level keys into the stored settings row, creating it when missing."""
    result = await db.execute(select(SystemSettingsRecord).where(SystemSettingsRecord.id == SYSTEM_SETTINGS_ID))
    record = result.scalar_one_or_none()
    if record is None:
        record = SystemSettingsRecord(id=SYSTEM_SETTINGS_ID, values=dict(values))
        db.add(record)
    else:
        merged = dict(record.values if isinstance(record.values, dict) else {})
        merged.update(values)
        record.values = merged
        flag_modified(record, "values")
    await db.flush()
    return dict(record.values)
