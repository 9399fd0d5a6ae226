"""
Email confirmation via the EmailJS REST API.

Config keys:
    service_id: str — EmailJS service id
    template_id: str — EmailJS template id
    public_key: str — EmailJS public key (sent as user_id)
    api_url: str — send endpoint
    public_base_url: str — origin used to build the QR view link
"""

from __future__ import annotations

import logging

import httpx

from ticketgate.config import Settings
from ticketgate.core.exceptions import NotifierFailure
from ticketgate.core.qr import qr_view_url
from ticketgate.core.schemas import Booking, NotificationResult, NotificationStatus
from ticketgate.integrations.base import Notifier

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.emailjs.com/api/v1.0/email/send"


class EmailNotifier(Notifier):
    notifier_type = "email"

    def __init__(self, config: dict):
        super().__init__(config)
        self.api_url = config.get("api_url") or DEFAULT_API_URL
        self.service_id = config.get("service_id", "")
        self.template_id = config.get("template_id", "")
        self.public_key = config.get("public_key", "")
        self.public_base_url = config.get("public_base_url", "")

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier | None":
        if not (settings.emailjs_service_id and settings.emailjs_template_id and settings.emailjs_public_key):
            return None
        return cls(
            {
                "api_url": settings.emailjs_api_url,
                "service_id": settings.emailjs_service_id,
                "template_id": settings.emailjs_template_id,
                "public_key": settings.emailjs_public_key,
                "public_base_url": settings.public_base_url,
            }
        )

    def build_template_params(self, booking: Booking, booking_id: str) -> dict:
        fields = booking.fields
        booking_date = ""
        if booking.slot_time is not None:
            booking_date = booking.slot_time.strftime("%Y-%m-%d %H:%M")
        elif fields.get("date"):
            booking_date = str(fields["date"])

        return {
            "to_name": fields.get("fullName") or fields.get("name") or "Valued Customer",
            "to_email": fields.get("email", ""),
            "booking_date": booking_date,
            "guests": fields.get("guests") or "Not specified",
            "booking_id": booking_id,
            "qr_code_url": qr_view_url(self.public_base_url, booking_id),
        }

    async def send(self, booking: Booking, booking_id: str) -> NotificationResult:
        if not booking.fields.get("email"):
            return NotificationResult(status=NotificationStatus.SKIPPED)
        if not (self.service_id and self.template_id and self.public_key):
            raise NotifierFailure("EmailJS is not configured")

        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": self.build_template_params(booking, booking_id),
        }

        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                resp = await client.post(self.api_url, json=payload)

            if resp.status_code == 200:
                logger.info("Confirmation email sent for booking %s", booking_id)
                return NotificationResult(status=NotificationStatus.SENT)

            detail = resp.text.strip() or f"emailjs_http_{resp.status_code}"
            logger.warning("Confirmation email rejected for booking %s: %s", booking_id, detail)
            return NotificationResult(status=NotificationStatus.FAILED, warning=detail)
        except httpx.HTTPError as e:
            logger.warning("Confirmation email failed for booking %s: %s", booking_id, e)
            return NotificationResult(status=NotificationStatus.FAILED, warning=str(e) or type(e).__name__)
