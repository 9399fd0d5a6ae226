from __future__ import annotations

import logging
import secrets
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ticketgate.config import Settings, get_settings
from ticketgate.core.checkin import CheckinStateMachine
from ticketgate.core.store import BookingStore, SqlBookingStore
from ticketgate.core.submission import BookingSubmission
from ticketgate.core.system_settings import SystemSettingsStore, defaults_from
from ticketgate.core.timeutil import get_zone
from ticketgate.db import async_session
from ticketgate.integrations import build_notifier
from ticketgate.integrations.base import Notifier

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_booking_store() -> BookingStore:
    return SqlBookingStore(async_session)


def get_settings_store(settings: Settings = Depends(get_settings)) -> SystemSettingsStore:
    return SystemSettingsStore(async_session, defaults_from(settings))


def get_notifier(settings: Settings = Depends(get_settings)) -> Notifier:
    return build_notifier(settings)


def get_checkin(store: BookingStore = Depends(get_booking_store)) -> CheckinStateMachine:
    return CheckinStateMachine(store)


def get_submission(
    store: BookingStore = Depends(get_booking_store),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> BookingSubmission:
    dispatch = None
    if settings.notify_async:
        from ticketgate.workers.notify import dispatch_confirmation

        dispatch = dispatch_confirmation

    return BookingSubmission(
        store,
        notifier,
        public_base_url=settings.public_base_url,
        tz=get_zone(settings.timezone),
        enforce_capacity=settings.enforce_slot_capacity,
        dispatch=dispatch,
    )



def require_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for operator routes: `Authorization: Bearer <TICKETGATE_ADMIN_TOKEN>`."""
    if not settings.admin_token:
        logger.warning("Operator route called but TICKETGATE_ADMIN_TOKEN is not set")
    elif credentials is not None and secrets.compare_digest(
        credentials.credentials.encode("utf-8"), settings.admin_token.encode("utf-8")
    ):
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Operator credentials required",
        headers={"WWW-Authenticate": "Bearer"},
    )
