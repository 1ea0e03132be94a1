import logging
from datetime import datetime

from sqlalchemy.orm import Session

from .. import crud, models
from ..crud import crud_reschedule
from ..models.base import utcnow
from ..models.booking_status import BookingStatus, TERMINAL_BOOKING_STATUSES
from ..models.notification import NotificationEvent
from ..models.reschedule import RescheduleStatus
from ..models.user import UserRole
from ..utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from ..utils.notifications import notify

logger = logging.getLogger(__name__)


def request_reschedule(
    db: Session, booking_id: int, requested_date: datetime, user: models.User
) -> models.Reschedule:
    """Open a date-change request and park the booking in ``pending``."""
    db_booking = crud.booking.get_owned_booking(db, booking_id, user.id)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})
    if db_booking.status in TERMINAL_BOOKING_STATUSES:
        raise InvalidStateError(
            f"A {db_booking.status.value} booking cannot be rescheduled",
            {"booking_id": "Terminal state"},
        )
    if requested_date <= utcnow():
        raise InvalidRequestError(
            "Requested date must be in the future", {"requested_date": "Must be in the future"}
        )
    if any(r.status == RescheduleStatus.PENDING for r in db_booking.reschedules):
        raise ConflictError(
            "A reschedule request is already pending for this booking",
            {"booking_id": "Pending reschedule exists"},
        )

    reschedule = models.Reschedule(
        booking_id=db_booking.id,
        requested_date=requested_date,
        status=RescheduleStatus.PENDING,
        previous_booking_status=db_booking.status,
    )
    try:
        db.add(reschedule)
        db_booking.status = BookingStatus.PENDING
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(reschedule)
    logger.info(
        "Reschedule %s requested for booking %s: %s",
        reschedule.id,
        db_booking.id,
        requested_date.isoformat(),
    )
    notify(
        db,
        db_booking.user_id,
        NotificationEvent.RESCHEDULE_REQUESTED,
        booking_id=db_booking.id,
        reschedule_id=reschedule.id,
        requested_date=requested_date,
    )
    return reschedule


def handle_reschedule_request(
    db: Session, reschedule_id: int, approve: bool, user: models.User
) -> models.Reschedule:
    """Resolve a pending reschedule exactly once.

    Approval moves the travel date and confirms the booking; rejection puts
    the booking back in the status it held before the request.
    """
    if user.role == UserRole.CUSTOMER:
        raise ForbiddenError("Customers cannot resolve reschedule requests", {})

    reschedule = db.get(models.Reschedule, reschedule_id)
    if reschedule is None:
        raise NotFoundError("Reschedule request not found", {"reschedule_id": "Not found"})
    db_booking = crud.booking.get_booking(db, reschedule.booking_id)

    if user.role == UserRole.AGENT and not crud.booking_touches_agent(db_booking, user.id):
        raise ForbiddenError(
            "You can only resolve reschedules for your own packages, hotels or flights",
            {"reschedule_id": "Not owned"},
        )
    if reschedule.status != RescheduleStatus.PENDING:
        raise ConflictError(
            f"Reschedule request already {reschedule.status.value}",
            {"reschedule_id": "Already resolved"},
        )
    if db_booking.status in TERMINAL_BOOKING_STATUSES:
        raise InvalidStateError(
            f"Booking is already {db_booking.status.value}",
            {"booking_id": "Terminal state"},
        )

    decision = RescheduleStatus.APPROVED if approve else RescheduleStatus.REJECTED
    try:
        if not crud_reschedule.resolve_pending_reschedule(db, reschedule.id, decision, user.id, utcnow()):
            raise ConflictError(
                "Reschedule request already resolved", {"reschedule_id": "Already resolved"}
            )
        if approve:
            db_booking.travel_date = reschedule.requested_date
            db_booking.status = BookingStatus.CONFIRMED
        else:
            db_booking.status = reschedule.previous_booking_status
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(reschedule)
    logger.info(
        "Reschedule %s %s by user %s (booking %s now %s)",
        reschedule.id,
        reschedule.status.value,
        user.id,
        db_booking.id,
        db_booking.status.value,
    )
    notify(
        db,
        db_booking.user_id,
        NotificationEvent.RESCHEDULE_APPROVED if approve else NotificationEvent.RESCHEDULE_REJECTED,
        booking_id=db_booking.id,
        reschedule_id=reschedule.id,
        travel_date=db_booking.travel_date,
    )
    return reschedule
