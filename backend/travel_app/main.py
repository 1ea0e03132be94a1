# backend/travel_app/main.py

import asyncio
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from . import models  # noqa: F401  registers every table on Base.metadata
from .api import (
    api_booking,
    api_catalog,
    api_notification,
    api_payment,
    api_refund,
    api_review,
    api_ws,
)
from .core.config import settings
from .core.observability import setup_logging
from .database import Base, engine
from .services.redis_client import close_redis_client
from .utils import TravelAppError
from .utils.notifications import bind_event_loop

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, default_response_class=ORJSONResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.exception_handler(TravelAppError)
async def travel_app_error_handler(request: Request, exc: TravelAppError):
    """Render domain failures with the shared ``error_response`` body."""
    http_exc = exc.to_http()
    level = logging.ERROR if http_exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        "%s %s at %s: %s %s",
        exc.code,
        http_exc.status_code,
        request.url.path,
        exc.message,
        exc.field_errors,
    )
    return ORJSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


api_prefix = settings.API_V1_STR  # usually something like "/api/v1"

# ─── BOOKING ROUTES (under /api/v1/bookings) ─────────────────────────────────────────
# Refunds are mounted first so /bookings/refunds is not captured by /bookings/{booking_id}
app.include_router(api_refund.router, prefix=f"{api_prefix}/bookings/refunds", tags=["refunds"])
app.include_router(api_booking.router, prefix=f"{api_prefix}/bookings", tags=["bookings"])

# ─── PAYMENT ROUTES (under /api/v1/payments) ─────────────────────────────────────────
app.include_router(api_payment.router, prefix=f"{api_prefix}/payments", tags=["payments"])

# ─── CATALOG / REVIEWS / NOTIFICATIONS / WEBSOCKET ───────────────────────────────
app.include_router(api_catalog.router, prefix=f"{api_prefix}", tags=["catalog"])
app.include_router(api_review.router, prefix=f"{api_prefix}", tags=["reviews"])
app.include_router(api_notification.router, prefix=f"{api_prefix}", tags=["notifications"])
app.include_router(api_ws.router, prefix=f"{api_prefix}", tags=["ws"])


@app.on_event("startup")
async def bootstrap() -> None:
    """Create tables for fresh SQLite installs and bind the realtime loop."""
    Base.metadata.create_all(bind=engine)
    bind_event_loop(asyncio.get_running_loop())
    await api_ws.ensure_ws_bus_started()


@app.on_event("shutdown")
async def shutdown_redis_client() -> None:
    """Close Redis connections when the application shuts down."""
    logger.info("Closing Redis client")
    await close_redis_client()


@app.get("/healthz", tags=["health"])
async def healthz():
    return {"status": "ok"}
