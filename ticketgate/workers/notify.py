"""
Confirmation Worker — delivers booking confirmations outside the request.

The API dispatches `ticketgate.send_confirmation` after the booking insert has
committed, so the task only ever sees persisted bookings. Delivery failures
are logged and never touch the booking record.
"""

from __future__ import annotations

import asyncio
import logging

from ticketgate.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

# One asyncio loop per worker process; asyncpg connections are bound to the loop that opened them.
_worker_loop: asyncio.AbstractEventLoop | None = None


def _get_worker_loop() -> asyncio.AbstractEventLoop:
    global _worker_loop
    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()
    asyncio.set_event_loop(_worker_loop)
    return _worker_loop


@celery_app.task(name="ticketgate.send_confirmation")
def send_confirmation_task(booking_id: str) -> dict:
    loop = _get_worker_loop()
    return loop.run_until_complete(_send_confirmation(booking_id))


def dispatch_confirmation(booking_id: str) -> None:
    send_confirmation_task.delay(booking_id)


async def _send_confirmation(booking_id: str) -> dict:
    from ticketgate.config import get_settings
    from ticketgate.core.store import SqlBookingStore
    from ticketgate.db import async_session
    from ticketgate.integrations import build_notifier

    store = SqlBookingStore(async_session)
    booking = await store.get(booking_id)
    if booking is None:
        logger.warning("Confirmation requested for unknown booking %s", booking_id)
        return {"status": "skipped", "warning": "booking_not_found"}

    notifier = build_notifier(get_settings())
    try:
        result = await notifier.send(booking, booking_id)
    except Exception as e:
        logger.warning("Confirmation for booking %s failed: %s", booking_id, e)
        return {"status": "failed", "warning": str(e)}

    return result.model_dump(mode="json")
