"""Notification sink for booking, payment and refund events.

Every helper here is best-effort: a failure to persist or deliver a
notification is logged and swallowed so the business operation that
triggered it is never rolled back or reported as failed.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Set

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from .. import models
from ..api.api_ws import notifications_manager
from ..core.config import settings
from ..models.booking_status import BookingStatus, BookingType
from ..models.notification import NotificationEvent, NotificationType

logger = logging.getLogger(__name__)

_main_loop: Optional[asyncio.AbstractEventLoop] = None
# In-flight pushes, held until they finish
_pending_pushes: Set[Any] = set()

BOOKING_TYPE_LABELS = {
    BookingType.PACKAGE: "Travel Package",
    BookingType.HOTEL: "Hotel",
    BookingType.FLIGHT: "Flight",
    BookingType.CUSTOM: "Custom Trip",
}

_EVENT_TYPES = {
    NotificationEvent.PAYMENT_SUCCESS: NotificationType.PAYMENT,
    NotificationEvent.PAYMENT_FAILED: NotificationType.PAYMENT,
    NotificationEvent.REFUND_REQUESTED: NotificationType.REFUND,
    NotificationEvent.REFUND_APPROVED: NotificationType.REFUND,
    NotificationEvent.REFUND_REJECTED: NotificationType.REFUND,
    NotificationEvent.BROADCAST: NotificationType.SYSTEM,
}


def bind_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Remember the server loop so worker threads can hand pushes back to it."""
    global _main_loop
    _main_loop = loop


def format_money(amount: Any) -> str:
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"{settings.DEFAULT_CURRENCY} {value:,.0f}"
    return f"{settings.DEFAULT_CURRENCY} {value:,.2f}"


def _type_label(booking_type: Any) -> str:
    try:
        return BOOKING_TYPE_LABELS[BookingType(booking_type)]
    except ValueError:
        return "Travel"


def format_notification_message(event: NotificationEvent, **kwargs: Any) -> str:
    """Return a human friendly notification message."""
    booking_id = kwargs.get("booking_id")
    if event == NotificationEvent.BOOKING_CREATED:
        return f"Your booking #{booking_id} has been created successfully"
    if event == NotificationEvent.BOOKING_CONFIRMED:
        return f"Your booking #{booking_id} has been confirmed"
    if event == NotificationEvent.BOOKING_REJECTED:
        return f"Your booking #{booking_id} has been rejected"
    if event == NotificationEvent.BOOKING_STATUS_UPDATED:
        return f"Your booking #{booking_id} status has been updated to {kwargs.get('status')}"
    if event == NotificationEvent.BOOKING_CANCELLED:
        label = _type_label(kwargs.get("booking_type"))
        return f"Your {label} booking #{booking_id} has been cancelled"
    if event == NotificationEvent.RESCHEDULE_REQUESTED:
        return f"Reschedule request for booking #{booking_id} has been submitted"
    if event == NotificationEvent.RESCHEDULE_APPROVED:
        return f"Reschedule request for booking #{booking_id} has been approved"
    if event == NotificationEvent.RESCHEDULE_REJECTED:
        return f"Reschedule request for booking #{booking_id} has been rejected"
    if event == NotificationEvent.PAYMENT_SUCCESS:
        return f"Payment for booking #{booking_id} has been successful"
    if event == NotificationEvent.PAYMENT_FAILED:
        return f"Payment for booking #{booking_id} has failed"
    if event == NotificationEvent.REFUND_REQUESTED:
        label = _type_label(kwargs.get("booking_type"))
        return (
            f"Refund request for your {label} booking #{booking_id} has been submitted."
            f" Refund amount: {format_money(kwargs.get('amount'))}"
        )
    if event == NotificationEvent.REFUND_APPROVED:
        return (
            f"Your refund for booking #{booking_id} has been approved."
            f" Refund amount: {format_money(kwargs.get('amount'))}"
        )
    if event == NotificationEvent.REFUND_REJECTED:
        return f"Your refund request for booking #{booking_id} has been rejected"
    return str(kwargs.get("content", ""))


def _push_done(future: Any) -> None:
    _pending_pushes.discard(future)
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Notification push failed: %s", exc, exc_info=exc)


def _track_push(future: Any) -> None:
    _pending_pushes.add(future)
    future.add_done_callback(_push_done)


def _schedule_broadcast(user_id: int, data: Dict[str, Any]) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop is not None:
        _track_push(loop.create_task(notifications_manager.broadcast(user_id, data)))
        return
    if _main_loop is not None and _main_loop.is_running():
        # Called from a threadpool worker: sockets belong to the server loop
        _track_push(
            asyncio.run_coroutine_threadsafe(notifications_manager.broadcast(user_id, data), _main_loop)
        )
        return
    # If no event loop is running (e.g., in tests), run synchronously
    asyncio.run(notifications_manager.broadcast(user_id, data))


def _create_and_broadcast(
    db: Session,
    user_id: int,
    event: NotificationEvent,
    message: str,
    link: Optional[str],
    data: Dict[str, Any],
) -> models.Notification:
    """Persist a notification then broadcast it via WebSocket."""
    from ..crud import crud_notification

    notif = crud_notification.create_notification(
        db,
        user_id=user_id,
        type=_EVENT_TYPES.get(event, NotificationType.BOOKING),
        event=event.value,
        message=message,
        link=link,
        data=data,
    )
    payload = {
        "id": notif.id,
        "type": notif.type.value,
        "event": notif.event,
        "message": notif.message,
        "link": notif.link,
        "data": notif.data,
        "is_read": notif.is_read,
        "created_at": notif.created_at.isoformat(),
    }
    _schedule_broadcast(user_id, payload)
    return notif


def notify(
    db: Session,
    user_id: int,
    event: NotificationEvent,
    *,
    link: Optional[str] = None,
    **context: Any,
) -> Optional[models.Notification]:
    """Record and push ``event`` for ``user_id``; never raises."""
    try:
        message = format_notification_message(event, **context)
        if link is None and context.get("booking_id") is not None:
            link = f"/bookings/{context['booking_id']}"
        data = jsonable_encoder(context)
        return _create_and_broadcast(db, user_id, event, message, link, data)
    except Exception:
        logger.exception("Failed to deliver %s notification to user %s", event.value, user_id)
        db.rollback()
        return None


def notify_booking_status_change(db: Session, booking: models.Booking) -> None:
    """Tell the booking owner about a status set through the status endpoint."""
    if booking.status == BookingStatus.CONFIRMED:
        event = NotificationEvent.BOOKING_CONFIRMED
    elif booking.status == BookingStatus.REJECTED:
        event = NotificationEvent.BOOKING_REJECTED
    else:
        event = NotificationEvent.BOOKING_STATUS_UPDATED
    notify(
        db,
        booking.user_id,
        event,
        booking_id=booking.id,
        status=booking.status.value,
    )
