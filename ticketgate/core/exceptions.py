from __future__ import annotations


class TicketGateError(Exception):
    """Base class for check-in core errors."""

    retryable: bool = False


class StoreUnavailable(TicketGateError):
    """Booking store could not be reached or failed mid-operation."""

    retryable = True

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        message = f"Booking store unavailable during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NotifierFailure(TicketGateError):
    """Confirmation delivery failed. Never fatal to the booking itself."""


class SlotUnavailable(TicketGateError):
    """Requested slot is at capacity (raised only when capacity is enforced)."""

    def __init__(self, current_count: int, max_count: int):
        self.current_count = current_count
        self.max_count = max_count
        super().__init__(f"Slot is full: {current_count}/{max_count} bookings")


class InvalidSlotTime(TicketGateError, ValueError):
    """Submitted slot value could not be interpreted as a date or date-time."""
