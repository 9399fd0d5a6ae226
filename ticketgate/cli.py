"""
TicketGate CLI — operator commands against the booking database.

Usage:
    ticketgate verify <booking-id>         — check in a scanned ticket
    ticketgate show <booking-id>           — print a booking
    ticketgate availability <when>         — slot capacity for an ISO date / date-time
    ticketgate stats                       — dashboard counts for today
    ticketgate settings show               — current system settings
    ticketgate settings set [options]      — update system settings
"""

from __future__ import annotations

import asyncio
import logging

import click

from ticketgate.config import get_settings
from ticketgate.core.availability import AvailabilityEngine
from ticketgate.core.checkin import CheckinStateMachine
from ticketgate.core.exceptions import InvalidSlotTime, StoreUnavailable
from ticketgate.core.schemas import Booking, VerificationReason
from ticketgate.core.store import BookingStore
from ticketgate.core.system_settings import SystemSettingsStore, defaults_from
from ticketgate.core.timeutil import day_bounds, get_zone, normalize_slot_time, utcnow

logger = logging.getLogger(__name__)

EXIT_REJECTED = 1
EXIT_RETRY = 75  # EX_TEMPFAIL


def _booking_store() -> BookingStore:
    from ticketgate.core.store import SqlBookingStore
    from ticketgate.db import async_session

    return SqlBookingStore(async_session)


def _settings_store() -> SystemSettingsStore:
    from ticketgate.db import async_session

    return SystemSettingsStore(async_session, defaults_from(get_settings()))


def _format_booking(booking: Booking) -> list[str]:
    lines = [f"  ID:       {booking.id}", f"  Status:   {booking.status.value}"]
    if booking.slot_time is not None:
        lines.append(f"  Slot:     {booking.slot_time.isoformat()}")
    lines.append(f"  Created:  {booking.created_at.isoformat()}")
    if booking.scanned_at is not None:
        lines.append(f"  Scanned:  {booking.scanned_at.isoformat()}")
    for name, value in booking.fields.items():
        lines.append(f"  {name}: {value}")
    return lines


def _run(coro):
    try:
        return asyncio.run(coro)
    except StoreUnavailable as e:
        click.echo(f"✗ {e} (retry later)", err=True)
        raise SystemExit(EXIT_RETRY)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def cli(verbose: bool):
    """TicketGate — booking check-in CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@cli.command()
@click.argument("token")
def verify(token: str):
    """Check in a scanned ticket (the token is the booking id)."""
    result = _run(CheckinStateMachine(_booking_store()).verify(token))

    mark = "✓" if result.valid else "✗"
    click.echo(f"{mark} {result.message}")
    if result.data is not None:
        for line in _format_booking(result.data):
            click.echo(line)
    if result.reason == VerificationReason.ALREADY_SCANNED and result.scanned_at is not None:
        click.echo(f"  First scanned at {result.scanned_at.isoformat()}")

    if not result.valid:
        raise SystemExit(EXIT_REJECTED)


@cli.command()
@click.argument("booking_id")
def show(booking_id: str):
    """Print a booking."""
    booking = _run(_booking_store().get(booking_id))
    if booking is None:
        click.echo(f"Booking {booking_id} not found", err=True)
        raise SystemExit(EXIT_REJECTED)
    for line in _format_booking(booking):
        click.echo(line)


@cli.command()
@click.argument("when")
def availability(when: str):
    """Show slot capacity for an ISO date or date-time."""
    settings = get_settings()
    try:
        requested = normalize_slot_time(when, get_zone(settings.timezone))
    except InvalidSlotTime as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    async def _check():
        system_settings = await _settings_store().load()
        return await AvailabilityEngine(_booking_store()).check_availability(
            requested,
            system_settings.capacity,
            advance_booking_days=system_settings.advance_booking_days,
        )

    try:
        result = _run(_check())
    except InvalidSlotTime as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)
    state = "available" if result.available else "full"
    click.echo(f"{state}: {result.current_count}/{result.max} bookings in slot")
    if not result.within_advance_window:
        click.echo("  (outside the advance booking window)")


@cli.command()
def stats():
    """Dashboard counts for today."""
    tz = get_zone(get_settings().timezone)
    today = utcnow().astimezone(tz).date()
    counts = _run(_booking_store().stats(*day_bounds(today, tz)))

    click.echo(f"{'Total bookings':<20} {counts.total_bookings}")
    click.echo(f"{'Booked today':<20} {counts.today_bookings}")
    click.echo(f"{'Scanned today':<20} {counts.scanned_today}")
    click.echo(f"{'Pending':<20} {counts.pending_bookings}")


@cli.group("settings")
def settings_group():
    """Manage system settings."""


@settings_group.command("show")
def settings_show():
    """Show current system settings."""
    values = _run(_settings_store().load())
    for name, value in values.model_dump().items():
        click.echo(f"{name:<24} {value}")


@settings_group.command("set")
@click.option("--max-per-slot", type=click.IntRange(min=1), default=None, help="Maximum bookings per slot")
@click.option("--slot-minutes", type=click.IntRange(min=1), default=None, help="Slot duration in minutes")
@click.option("--advance-days", type=click.IntRange(min=1), default=None, help="Advance booking window in days")
@click.option("--email/--no-email", default=None, help="Send confirmation emails")
def settings_set(
    max_per_slot: int | None,
    slot_minutes: int | None,
    advance_days: int | None,
    email: bool | None,
):
    """Update system settings (unspecified options keep their value)."""
    store = _settings_store()

    async def _update():
        current = await store.load()
        changes = {
            "max_bookings_per_slot": max_per_slot,
            "slot_duration_minutes": slot_minutes,
            "advance_booking_days": advance_days,
            "email_notifications": email,
        }
        updated = current.model_copy(update={k: v for k, v in changes.items() if v is not None})
        return await store.save(updated)

    values = _run(_update())
    click.echo("✓ Settings saved")
    for name, value in values.model_dump().items():
        click.echo(f"  {name:<24} {value}")


if __name__ == "__main__":
    cli()
