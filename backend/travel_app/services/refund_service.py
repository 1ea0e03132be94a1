"""Refund workflow: eligibility, amount policy, request, cancellation with an
optional refund, and admin/agent resolution.

Local state is authoritative. When an approved refund cannot be pushed to
the payment gateway the failure is logged with the refund and order ids for
manual reconciliation, and the approval stands.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..core.config import settings
from ..crud import crud_catalog, crud_payment, crud_refund, crud_reschedule
from ..models.base import utcnow
from ..models.booking_status import BookingStatus, PaymentStatus, TERMINAL_BOOKING_STATUSES
from ..models.notification import NotificationEvent
from ..models.refund import RefundMethod, RefundStatus
from ..models.user import UserRole
from ..utils.errors import (
    ConflictError,
    ForbiddenError,
    GatewayError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    TravelAppError,
)
from ..utils.notifications import notify
from .midtrans import MidtransClient

logger = logging.getLogger(__name__)

REFUNDABLE_BOOKING_STATUSES = frozenset({BookingStatus.CONFIRMED})


def calculate_refund_amount(original_amount: Decimal) -> Decimal:
    """Flat-rate refund, floored to a whole currency unit."""
    raw = Decimal(original_amount) * settings.REFUND_RATE
    return raw.quantize(Decimal("1"), rounding=ROUND_FLOOR)


def validate_refund_eligibility(
    booking: models.Booking,
    status: Optional[BookingStatus] = None,
    now: Optional[datetime] = None,
) -> None:
    """Raise :class:`InvalidStateError` unless ``booking`` may be refunded.

    ``status`` overrides the booking's current status, for callers that have
    already moved the booking on (cancellation evaluates the prior status).
    """
    current = status or booking.status
    if current not in REFUNDABLE_BOOKING_STATUSES:
        raise InvalidStateError(
            "Only confirmed bookings can be refunded", {"booking_id": f"Booking is {current.value}"}
        )
    if booking.payment_status != PaymentStatus.PAID:
        raise InvalidStateError(
            "Only paid bookings can be refunded", {"booking_id": "Booking has not been paid"}
        )
    now = now or utcnow()
    hours_left = (booking.travel_date - now).total_seconds() / 3600
    if hours_left < settings.REFUND_MIN_HOURS_BEFORE_TRAVEL:
        raise InvalidStateError(
            "Refunds must be requested at least 1 day before the travel date",
            {"travel_date": "Too close to travel date"},
        )


def _new_refund(booking: models.Booking, reason: str, user_id: int) -> models.Refund:
    original = Decimal(booking.total_price)
    return models.Refund(
        booking_id=booking.id,
        user_id=user_id,
        amount=calculate_refund_amount(original),
        original_amount=original,
        reason=reason,
        status=RefundStatus.PENDING,
    )


def _mark_cancelled(db: Session, booking: models.Booking, reason: str) -> None:
    now = utcnow()
    if not crud.booking.cancel_if_live(db, booking.id, reason, now):
        raise InvalidStateError(
            "Booking is no longer active", {"booking_id": "Terminal state"}
        )
    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = now
    booking.cancellation_reason = reason
    closed = crud_reschedule.reject_pending_for_booking(db, booking.id, now)
    if closed:
        logger.info("Rejected %s open reschedule(s) of cancelled booking %s", closed, booking.id)
    if booking.package_id is not None:
        crud_catalog.increment_package_quota(db, booking.package_id, 1)


def _notify_refund_requested(db: Session, booking: models.Booking, refund: models.Refund) -> None:
    notify(
        db,
        booking.user_id,
        NotificationEvent.REFUND_REQUESTED,
        booking_id=booking.id,
        booking_type=booking.type.value,
        refund_id=refund.id,
        amount=refund.amount,
        original_amount=refund.original_amount,
    )


def request_refund(db: Session, booking_id: int, reason: str, user: models.User) -> models.Refund:
    db_booking = crud.booking.get_owned_booking(db, booking_id, user.id)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})
    if crud_refund.get_refund_for_booking(db, db_booking.id) is not None:
        raise ConflictError(
            "A refund has already been requested for this booking", {"booking_id": "Duplicate"}
        )
    validate_refund_eligibility(db_booking)

    refund = _new_refund(db_booking, reason, user.id)
    try:
        db.add(refund)
        _mark_cancelled(db, db_booking, reason)
        db.commit()
    except IntegrityError:
        # A concurrent request won the unique constraint on booking_id
        db.rollback()
        raise ConflictError(
            "A refund has already been requested for this booking", {"booking_id": "Duplicate"}
        )
    except Exception:
        db.rollback()
        raise
    db.refresh(refund)
    logger.info(
        "Refund %s requested for booking %s: amount=%s original=%s",
        refund.id,
        db_booking.id,
        refund.amount,
        refund.original_amount,
    )
    _notify_refund_requested(db, db_booking, refund)
    return refund


def cancel_booking(
    db: Session,
    booking_id: int,
    reason: str,
    request_refund_flag: bool,
    user: models.User,
) -> models.Booking:
    """Cancel a booking; optionally open a refund for a paid one.

    The refund step runs in a SAVEPOINT so an ineligible or duplicate refund
    only drops the refund row, never the cancellation.
    """
    db_booking = crud.booking.get_owned_booking(db, booking_id, user.id)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})
    if db_booking.status in TERMINAL_BOOKING_STATUSES:
        raise InvalidStateError(
            f"Booking is already {db_booking.status.value}", {"booking_id": "Terminal state"}
        )

    prior_status = db_booking.status
    refund: Optional[models.Refund] = None
    try:
        _mark_cancelled(db, db_booking, reason)
        if request_refund_flag and db_booking.payment_status == PaymentStatus.PAID:
            try:
                with db.begin_nested():
                    if crud_refund.get_refund_for_booking(db, db_booking.id) is not None:
                        raise ConflictError("A refund already exists for this booking")
                    validate_refund_eligibility(db_booking, status=prior_status)
                    refund = _new_refund(db_booking, reason, user.id)
                    db.add(refund)
            except (TravelAppError, IntegrityError) as exc:
                refund = None
                logger.warning(
                    "Booking %s cancelled without refund: %s",
                    db_booking.id,
                    getattr(exc, "message", str(exc)),
                )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Booking %s cancelled by user %s", db_booking.id, user.id)

    notify(
        db,
        db_booking.user_id,
        NotificationEvent.BOOKING_CANCELLED,
        booking_id=db_booking.id,
        booking_type=db_booking.type.value,
        reason=reason,
    )
    if refund is not None:
        _notify_refund_requested(db, db_booking, refund)
    return crud.booking.get_booking(db, db_booking.id)


def process_refund(
    db: Session,
    refund_id: int,
    decision: RefundStatus,
    user: models.User,
    gateway: MidtransClient,
    refund_method: Optional[RefundMethod] = None,
    refund_proof: Optional[str] = None,
) -> models.Refund:
    if user.role == UserRole.CUSTOMER:
        raise ForbiddenError("Customers cannot process refunds", {})

    refund = crud_refund.get_refund(db, refund_id)
    if refund is None:
        raise NotFoundError("Refund not found", {"refund_id": "Not found"})
    db_booking = crud.booking.get_booking(db, refund.booking_id)
    if user.role == UserRole.AGENT and not crud.booking_touches_agent(db_booking, user.id):
        raise ForbiddenError(
            "You can only process refunds for your own packages, hotels or flights",
            {"refund_id": "Not owned"},
        )
    if refund.status != RefundStatus.PENDING:
        raise ConflictError(
            f"Refund has already been {refund.status.value}", {"refund_id": "Already processed"}
        )
    decision = RefundStatus(decision)
    if decision == RefundStatus.PENDING:
        raise InvalidRequestError("Decision must be approved or rejected", {"status": "Invalid"})
    approved = decision == RefundStatus.APPROVED
    if approved and refund_method is None:
        raise InvalidRequestError(
            "Refund method is required when approving a refund",
            {"refund_method": "Required"},
        )

    try:
        if not crud_refund.resolve_pending_refund(db, refund.id, decision, user.id, utcnow()):
            raise ConflictError(
                "Refund has already been processed", {"refund_id": "Already processed"}
            )
        if approved:
            refund.refund_method = refund_method
            refund.refund_proof = refund_proof
            refund.gateway_refund_key = f"REFUND-{refund.id}"
            db_booking.status = BookingStatus.REFUNDED
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(refund)
    logger.info("Refund %s %s by user %s", refund.id, decision.value, user.id)

    if approved:
        payment = crud_payment.latest_payment_for_booking(db, refund.booking_id)
        if payment is not None:
            try:
                gateway.refund_transaction(
                    payment.order_id,
                    refund.amount,
                    refund_key=refund.gateway_refund_key,
                    reason=refund.reason,
                )
            except GatewayError as exc:
                logger.error(
                    "Gateway refund failed; reconcile manually refund_id=%s order_id=%s amount=%s: %s",
                    refund.id,
                    payment.order_id,
                    refund.amount,
                    exc.message,
                )

    notify(
        db,
        refund.user_id,
        NotificationEvent.REFUND_APPROVED if approved else NotificationEvent.REFUND_REJECTED,
        booking_id=refund.booking_id,
        refund_id=refund.id,
        amount=refund.amount,
        original_amount=refund.original_amount,
        refund_method=refund.refund_method.value if refund.refund_method else None,
    )
    return refund


def list_refunds(
    db: Session, user: models.User, filters: schemas.RefundFilters
) -> schemas.Page[schemas.RefundResponse]:
    limit = min(filters.limit, settings.MAX_PAGE_SIZE)
    items, total = crud_refund.list_refunds(db, user, filters, limit)
    return schemas.Page[schemas.RefundResponse](
        data=[schemas.RefundResponse.model_validate(r) for r in items],
        meta=schemas.build_page_meta(total, filters.page, limit),
    )


def get_refund(db: Session, refund_id: int, user: models.User) -> models.Refund:
    refund = crud_refund.get_visible_refund(db, refund_id, user)
    if refund is None:
        raise NotFoundError("Refund not found", {"refund_id": "Not found"})
    return refund
