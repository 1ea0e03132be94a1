"""Payment orchestration against the Midtrans gateway.

A local :class:`~travel_app.models.Payment` row is written only once the
gateway has handed back a payment session, so a failed gateway call leaves
nothing behind. Settlement arrives later through the signed HTTP callback.
"""

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..core.config import settings
from ..crud import crud_payment
from ..models.base import utcnow
from ..models.booking_status import BookingType, PaymentStatus, TERMINAL_BOOKING_STATUSES
from ..models.notification import NotificationEvent
from ..models.payment import PaymentMethod
from ..utils.errors import (
    ConflictError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from ..utils.notifications import notify
from .midtrans import MidtransClient

logger = logging.getLogger(__name__)

ORDER_ID_PATTERN = re.compile(r"^BOOKING-(\d+)-")

SUCCESS_STATUSES = frozenset({"capture", "settlement"})
FAILURE_STATUSES = frozenset({"deny", "cancel", "expire", "failure"})

# Midtrans reports transaction_time in Asia/Jakarta
GATEWAY_TZ = timezone(timedelta(hours=7))
GATEWAY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_order_id(booking_id: int, user_id: int, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"BOOKING-{booking_id}-{now_ms}-{user_id}"


def parse_order_id(order_id: str) -> Optional[int]:
    match = ORDER_ID_PATTERN.match(order_id or "")
    return int(match.group(1)) if match else None


def parse_transaction_time(value: Optional[str]) -> datetime:
    """Gateway local time to naive UTC; falls back to now when unparseable."""
    if value:
        try:
            local = datetime.strptime(value, GATEWAY_TIME_FORMAT).replace(tzinfo=GATEWAY_TZ)
            return local.astimezone(timezone.utc).replace(tzinfo=None)
        except ValueError:
            logger.warning("Unparseable transaction_time %r; using now", value)
    return utcnow()


def describe_booking(booking: models.Booking) -> str:
    """Single item name shown on the gateway checkout page."""
    if booking.type == BookingType.PACKAGE and booking.package is not None:
        return f"Travel Package: {booking.package.title}"
    if booking.hotel_items:
        return f"Hotel: {booking.hotel_items[0].hotel.name}"
    if booking.flight_items:
        flight = booking.flight_items[0].flight
        return f"Flight: {flight.airline_name} {flight.flight_number}"
    return f"Booking: {booking.id}"


def _customer_details(user: models.User) -> Dict[str, Any]:
    details: Dict[str, Any] = {"first_name": user.name, "email": user.email}
    if user.phone_number:
        details["phone"] = user.phone_number
    return details


def _payable_booking(db: Session, booking_id: int, user: models.User) -> models.Booking:
    db_booking = crud.booking.get_owned_booking(db, booking_id, user.id)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})
    if db_booking.payment_status == PaymentStatus.PAID:
        raise ConflictError("Booking has already been paid", {"booking_id": "Already paid"})
    if db_booking.status in TERMINAL_BOOKING_STATUSES:
        raise InvalidStateError(
            f"Cannot pay for a {db_booking.status.value} booking",
            {"booking_id": f"Booking is {db_booking.status.value}"},
        )
    return db_booking


def _open_transaction(
    db: Session,
    db_booking: models.Booking,
    method: PaymentMethod,
    user: models.User,
    gateway: MidtransClient,
) -> schemas.PaymentInitResponse:
    total = Decimal(db_booking.total_price)
    order_id = build_order_id(db_booking.id, user.id)
    items = [
        {
            "id": str(db_booking.id),
            "price": total,
            "quantity": 1,
            "name": describe_booking(db_booking),
        }
    ]
    # Raises GatewayError before anything is written
    session = gateway.create_transaction(
        order_id,
        total,
        customer=_customer_details(user),
        items=items,
        callback_url=f"{settings.FRONTEND_URL.rstrip('/')}/payment/callback",
    )

    payment = models.Payment(
        booking_id=db_booking.id,
        order_id=order_id,
        method=method,
        amount=total,
        transaction_status="pending",
        snap_token=session["token"],
        redirect_url=session["redirect_url"],
    )
    try:
        db.add(payment)
        if db_booking.payment_status == PaymentStatus.FAILED:
            db_booking.payment_status = PaymentStatus.UNPAID
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)
    logger.info(
        "Payment %s opened for booking %s: order_id=%s amount=%s",
        payment.id,
        db_booking.id,
        order_id,
        total,
    )
    return schemas.PaymentInitResponse(
        payment=schemas.PaymentResponse.model_validate(payment),
        token=session["token"],
        redirect_url=session["redirect_url"],
    )


def process_payment(
    db: Session,
    booking_id: int,
    method: PaymentMethod,
    amount: Decimal,
    user: models.User,
    gateway: MidtransClient,
) -> schemas.PaymentInitResponse:
    db_booking = _payable_booking(db, booking_id, user)
    if Decimal(amount) != Decimal(db_booking.total_price):
        raise InvalidStateError(
            "Payment amount does not match the booking total",
            {"amount": f"Expected {db_booking.total_price}"},
        )
    return _open_transaction(db, db_booking, method, user, gateway)


def retry_payment(
    db: Session,
    booking_id: int,
    user: models.User,
    gateway: MidtransClient,
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
) -> schemas.PaymentInitResponse:
    """Open a fresh gateway transaction for the booking's stored total."""
    db_booking = _payable_booking(db, booking_id, user)
    return _open_transaction(db, db_booking, method, user, gateway)


def handle_payment_callback(
    db: Session, payload: Mapping[str, Any], gateway: MidtransClient
) -> schemas.CallbackAck:
    """Reconcile one gateway notification.

    Replays of the same notification are harmless: a settled booking is not
    settled twice and the payment row simply records the latest status.
    """
    order_id = str(payload.get("order_id") or "")
    if not gateway.verify_signature(payload):
        raise InvalidRequestError("Invalid signature", {"signature_key": "Mismatch"})
    booking_id = parse_order_id(order_id)
    if booking_id is None:
        raise InvalidRequestError("Invalid order id", {"order_id": order_id})

    payment = crud_payment.get_by_order_id(db, order_id)
    if payment is None or payment.booking_id != booking_id:
        raise NotFoundError("Payment not found", {"order_id": order_id})
    db_booking = payment.booking

    transaction_status = str(payload.get("transaction_status") or "").lower()
    fraud_status = str(payload.get("fraud_status") or "").lower()

    event: Optional[NotificationEvent] = None
    try:
        payment.transaction_status = transaction_status
        if payload.get("transaction_id"):
            payment.transaction_id = str(payload["transaction_id"])
        if payload.get("payment_type"):
            payment.payment_type = str(payload["payment_type"])

        if transaction_status in SUCCESS_STATUSES:
            if fraud_status == "challenge":
                logger.warning("Payment %s flagged for fraud review; booking unchanged", order_id)
            elif crud.booking.mark_paid(db, db_booking.id):
                payment.payment_date = parse_transaction_time(payload.get("transaction_time"))
                if not crud.booking.confirm_if_live(db, db_booking.id):
                    logger.warning(
                        "Booking %s settled after leaving the lifecycle; status left unchanged",
                        db_booking.id,
                    )
                event = NotificationEvent.PAYMENT_SUCCESS
            elif payment.payment_date is None:
                logger.warning(
                    "Booking %s already paid; recorded settlement of %s without confirming",
                    db_booking.id,
                    order_id,
                )
        elif transaction_status in FAILURE_STATUSES:
            if crud.booking.mark_unpaid(db, db_booking.id):
                event = NotificationEvent.PAYMENT_FAILED
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Payment callback %s: transaction_status=%s booking=%s payment_status=%s status=%s",
        order_id,
        transaction_status,
        db_booking.id,
        db_booking.payment_status.value,
        db_booking.status.value,
    )
    if event is not None:
        notify(
            db,
            db_booking.user_id,
            event,
            booking_id=db_booking.id,
            order_id=order_id,
            amount=payment.amount,
            transaction_status=transaction_status,
        )
    return schemas.CallbackAck(
        status="ok",
        booking_id=db_booking.id,
        payment_status=db_booking.payment_status.value,
        booking_status=db_booking.status.value,
    )


def get_payment_history(db: Session, user: models.User) -> List[models.Payment]:
    return crud_payment.get_payments_for_user(db, user.id)


def get_payment_details(
    db: Session,
    payment_id: int,
    user: models.User,
    gateway: Optional[MidtransClient] = None,
    refresh: bool = False,
) -> schemas.PaymentDetailResponse:
    payment = crud_payment.get_payment_for_user(db, payment_id, user.id)
    if payment is None:
        raise NotFoundError("Payment not found", {"payment_id": "Not found"})
    detail = schemas.PaymentDetailResponse.model_validate(payment)
    if refresh and gateway is not None:
        # Read-only lookup; reconciliation still happens through the callback
        detail.gateway_status = gateway.get_status(payment.order_id)
    return detail
