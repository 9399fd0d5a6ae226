from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticketgate import __version__
from ticketgate.api.v1.availability import router as availability_router
from ticketgate.api.v1.bookings import router as bookings_router
from ticketgate.api.v1.checkin import router as checkin_router
from ticketgate.api.v1.health import router as health_router
from ticketgate.api.v1.settings import router as settings_router
from ticketgate.api.v1.stats import router as stats_router
from ticketgate.config import get_settings
from ticketgate.core.exceptions import StoreUnavailable
from ticketgate.db import engine


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Application startup completed (timezone=%s, enforce_slot_capacity=%s, notify_async=%s)",
        settings.timezone,
        settings.enforce_slot_capacity,
        settings.notify_async,
    )
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="TicketGate",
    description="Booking submission and QR check-in service",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

origins = (
    [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.allowed_origins != "*"
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(bookings_router)
app.include_router(availability_router)
app.include_router(checkin_router)
app.include_router(stats_router)
app.include_router(settings_router)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"reason": "store_unavailable", "retryable": True, "message": str(exc)}},
    )
