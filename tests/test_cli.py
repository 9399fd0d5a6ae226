from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from click.testing import CliRunner

from ticketgate import cli as cli_module
from ticketgate.cli import cli
from ticketgate.core.exceptions import StoreUnavailable
from ticketgate.core.schemas import Booking, SystemSettingsValues
from ticketgate.core.store import MemoryBookingStore


class FakeSettingsStore:
    def __init__(self, values: SystemSettingsValues | None = None):
        self.values = values or SystemSettingsValues()

    async def load(self) -> SystemSettingsValues:
        return self.values

    async def save(self, values: SystemSettingsValues) -> SystemSettingsValues:
        self.values = values
        return values


def _seeded_store(slot_time: datetime | None = None) -> tuple[MemoryBookingStore, str]:
    store = MemoryBookingStore()
    booking = Booking(
        fields={"fullName": "Ada Lovelace"},
        slot_time=slot_time,
        created_at=datetime(2020, 1, 1, 9, 0, tzinfo=timezone.utc),
    )
    booking_id = asyncio.run(store.put(booking))
    return store, booking_id


def test_cli_verify_checks_in_once(monkeypatch):
    store, booking_id = _seeded_store()
    monkeypatch.setattr(cli_module, "_booking_store", lambda: store)

    runner = CliRunner()
    first = runner.invoke(cli, ["verify", booking_id])
    assert first.exit_code == 0
    assert "✓ Valid booking verified successfully" in first.output
    assert "Status:   scanned" in first.output

    again = runner.invoke(cli, ["verify", booking_id])
    assert again.exit_code == 1
    assert "already been scanned" in again.output
    assert "First scanned at" in again.output


def test_cli_verify_unknown_token(monkeypatch):
    store, _ = _seeded_store()
    monkeypatch.setattr(cli_module, "_booking_store", lambda: store)

    result = CliRunner().invoke(cli, ["verify", "nope"])
    assert result.exit_code == 1
    assert "Invalid booking ID" in result.output


def test_cli_verify_store_down_exits_tempfail(monkeypatch):
    broken = AsyncMock()
    broken.get.side_effect = StoreUnavailable("get", "timeout")
    monkeypatch.setattr(cli_module, "_booking_store", lambda: broken)

    result = CliRunner().invoke(cli, ["verify", "b-1"])
    assert result.exit_code == cli_module.EXIT_RETRY


def test_cli_show(monkeypatch):
    store, booking_id = _seeded_store()
    monkeypatch.setattr(cli_module, "_booking_store", lambda: store)

    runner = CliRunner()
    ok = runner.invoke(cli, ["show", booking_id])
    assert ok.exit_code == 0
    assert "fullName: Ada Lovelace" in ok.output

    missing = runner.invoke(cli, ["show", "nope"])
    assert missing.exit_code == 1


def test_cli_availability(monkeypatch):
    store, _ = _seeded_store(slot_time=datetime(2020, 1, 1, 10, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(cli_module, "_booking_store", lambda: store)
    monkeypatch.setattr(
        cli_module, "_settings_store", lambda: FakeSettingsStore(SystemSettingsValues(max_bookings_per_slot=1))
    )

    runner = CliRunner()
    full = runner.invoke(cli, ["availability", "2020-01-01T10:00Z"])
    assert full.exit_code == 0
    assert "full: 1/1 bookings in slot" in full.output

    free = runner.invoke(cli, ["availability", "2020-01-02"])
    assert "available: 0/1 bookings in slot" in free.output

    bad = runner.invoke(cli, ["availability", "tomorrow-ish"])
    assert bad.exit_code == 2


def test_cli_stats(monkeypatch):
    store, _ = _seeded_store()
    monkeypatch.setattr(cli_module, "_booking_store", lambda: store)

    result = CliRunner().invoke(cli, ["stats"])
    assert result.exit_code == 0
    assert "Total bookings" in result.output
    assert "Pending" in result.output


def test_cli_settings_set_keeps_unspecified_values(monkeypatch):
    settings_store = FakeSettingsStore(SystemSettingsValues(slot_duration_minutes=45))
    monkeypatch.setattr(cli_module, "_settings_store", lambda: settings_store)

    runner = CliRunner()
    result = runner.invoke(cli, ["settings", "set", "--max-per-slot", "3", "--no-email"])
    assert result.exit_code == 0
    assert settings_store.values.max_bookings_per_slot == 3
    assert settings_store.values.slot_duration_minutes == 45
    assert settings_store.values.email_notifications is False

    shown = runner.invoke(cli, ["settings", "show"])
    assert "max_bookings_per_slot" in shown.output


def test_cli_settings_set_rejects_zero(monkeypatch):
    monkeypatch.setattr(cli_module, "_settings_store", lambda: FakeSettingsStore())
    result = CliRunner().invoke(cli, ["settings", "set", "--slot-minutes", "0"])
    assert result.exit_code != 0
