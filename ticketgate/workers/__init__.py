from ticketgate.workers.celery_app import celery_app

# Registers ticketgate.send_confirmation when the API dispatches without a worker import.
import ticketgate.workers.notify  # noqa: F401

__all__ = ["celery_app"]
