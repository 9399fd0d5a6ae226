"""
Base Notifier — abstract interface for confirmation delivery.

Delivery is best-effort: implementations report failure through the returned
NotificationResult (or NotifierFailure) and never affect the booking record.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ticketgate.core.schemas import Booking, NotificationResult, NotificationStatus

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Base class for notifiers."""

    notifier_type: str = ""

    def __init__(self, config: dict | None = None):
        self.config = config or {}

    @abstractmethod
    async def send(self, booking: Booking, booking_id: str) -> NotificationResult:
        """
        Deliver a confirmation referencing `booking_id`.

        Returns:
            NotificationResult with status sent / failed / skipped.
        """


class LogNotifier(Notifier):
    """Development notifier: records the confirmation in the log only."""

    notifier_type = "log"

    async def send(self, booking: Booking, booking_id: str) -> NotificationResult:
        logger.info("Confirmation for booking %s (recipient=%s)", booking_id, booking.fields.get("email") or "-")
        return NotificationResult(status=NotificationStatus.SENT)
