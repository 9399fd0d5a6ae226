from __future__ import annotations

from celery import Celery

from ticketgate.config import get_settings


settings = get_settings()

celery_app = Celery(
    "ticketgate",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["ticketgate.workers.notify"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=24 * 3600,
    timezone=settings.timezone,
    enable_utc=True,
    task_routes={"ticketgate.send_confirmation": {"queue": "notifications"}},
    # Confirmations are acknowledged after delivery so a killed worker re-sends rather than drops.
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

# `celery -A ticketgate.workers.celery_app worker -Q notifications`
app = celery_app

__all__ = ["celery_app"]
