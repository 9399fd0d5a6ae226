from __future__ import annotations


def qr_payload(booking_id: str) -> str:
    """The QR artifact encodes the booking id verbatim: no checksum, signature or expiry."""
    return booking_id


def qr_view_url(base_url: str, booking_id: str) -> str:
    return f"{base_url.rstrip('/')}/qr/{qr_payload(booking_id)}"
