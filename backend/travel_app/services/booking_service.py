"""Booking engine: creation across the four booking variants, role-scoped
listing and guarded status transitions."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..core.config import settings
from ..crud import crud_catalog, crud_reschedule
from ..models.base import utcnow
from ..models.booking_status import BookingStatus, BookingType, PaymentStatus, TERMINAL_BOOKING_STATUSES
from ..models.notification import NotificationEvent
from ..models.user import UserRole
from ..utils.errors import (
    ForbiddenError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from ..utils.notifications import notify, notify_booking_status_change

logger = logging.getLogger(__name__)

# Targets the status endpoint accepts; cancellation and refunds have their own workflows
STATUS_UPDATE_TARGETS = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.REJECTED}
)


def _hotel_line_items(
    db: Session, stays: Sequence[schemas.HotelStayIn]
) -> Tuple[List[models.BookingHotel], Decimal]:
    items: List[models.BookingHotel] = []
    total = Decimal("0")
    for stay in stays:
        hotel = crud_catalog.find_hotel(db, stay.hotel_id)
        if hotel is None:
            raise NotFoundError(
                f"Hotel {stay.hotel_id} not found", {"hotel_id": str(stay.hotel_id)}
            )
        line_total = Decimal(hotel.price_per_night) * stay.nights
        items.append(
            models.BookingHotel(
                hotel=hotel,
                check_in_date=stay.check_in_date,
                check_out_date=stay.check_out_date,
                nights=stay.nights,
                total_price=line_total,
            )
        )
        total += line_total
    return items, total


def _flight_line_items(
    db: Session, segments: Sequence[schemas.FlightSegmentIn]
) -> Tuple[List[models.BookingFlight], Decimal]:
    items: List[models.BookingFlight] = []
    total = Decimal("0")
    for segment in segments:
        flight = crud_catalog.find_flight(db, segment.flight_id)
        if flight is None:
            raise NotFoundError(
                f"Flight {segment.flight_id} not found", {"flight_id": str(segment.flight_id)}
            )
        # Flat fare per flight; seat class is recorded only
        line_total = Decimal(flight.price)
        items.append(
            models.BookingFlight(
                flight=flight,
                passenger_name=segment.passenger_name,
                seat_class=segment.seat_class,
                total_price=line_total,
            )
        )
        total += line_total
    return items, total


def _earliest_check_in(stays: Sequence[schemas.HotelStayIn]) -> Optional[datetime]:
    return min((s.check_in_date for s in stays), default=None)


def _package_booking(
    db: Session, booking_in: schemas.PackageBookingCreate, user: models.User
) -> models.Booking:
    package = crud_catalog.find_package(db, booking_in.package_id)
    if package is None:
        raise NotFoundError(
            f"Travel package {booking_in.package_id} not found",
            {"package_id": str(booking_in.package_id)},
        )
    if package.quota <= 0:
        raise InvalidStateError("Travel package is fully booked", {"package_id": "No quota left"})
    # The conditional UPDATE is what actually guards against overselling
    if not crud_catalog.decrement_package_quota(db, package.id, 1):
        raise InvalidStateError("Travel package is fully booked", {"package_id": "No quota left"})
    return models.Booking(
        user_id=user.id,
        package_id=package.id,
        type=BookingType.PACKAGE,
        travel_date=booking_in.travel_date,
        total_price=Decimal(package.price),
    )


def _hotel_booking(
    db: Session, booking_in: schemas.HotelBookingCreate, user: models.User
) -> models.Booking:
    hotel_items, total = _hotel_line_items(db, booking_in.hotels)
    return models.Booking(
        user_id=user.id,
        type=BookingType.HOTEL,
        travel_date=booking_in.travel_date or _earliest_check_in(booking_in.hotels),
        total_price=total,
        hotel_items=hotel_items,
    )


def _flight_booking(
    db: Session, booking_in: schemas.FlightBookingCreate, user: models.User
) -> models.Booking:
    flight_items, total = _flight_line_items(db, booking_in.flights)
    return models.Booking(
        user_id=user.id,
        type=BookingType.FLIGHT,
        travel_date=booking_in.travel_date,
        total_price=total,
        flight_items=flight_items,
    )


def _custom_booking(
    db: Session, booking_in: schemas.CustomBookingCreate, user: models.User
) -> models.Booking:
    if not booking_in.hotels and not booking_in.flights:
        raise InvalidRequestError(
            "Custom bookings need at least one hotel or flight",
            {"hotels": "Add a hotel stay or a flight segment"},
        )
    travel_date = booking_in.travel_date or _earliest_check_in(booking_in.hotels)
    if travel_date is None:
        raise InvalidRequestError("Travel date is required", {"travel_date": "Required"})
    hotel_items, hotel_total = _hotel_line_items(db, booking_in.hotels)
    flight_items, flight_total = _flight_line_items(db, booking_in.flights)
    return models.Booking(
        user_id=user.id,
        type=BookingType.CUSTOM,
        travel_date=travel_date,
        total_price=hotel_total + flight_total,
        hotel_items=hotel_items,
        flight_items=flight_items,
    )


_BUILDERS = {
    schemas.PackageBookingCreate: _package_booking,
    schemas.HotelBookingCreate: _hotel_booking,
    schemas.FlightBookingCreate: _flight_booking,
    schemas.CustomBookingCreate: _custom_booking,
}


def create_booking(db: Session, booking_in: schemas.BookingCreate, user: models.User) -> models.Booking:
    """Create a booking and its line items in one transaction.

    For package bookings the quota decrement is part of the same unit, so a
    failure anywhere rolls the seat back as well.
    """
    builder = _BUILDERS.get(type(booking_in))
    if builder is None:
        raise InvalidRequestError("Unsupported booking type", {"type": str(getattr(booking_in, "type", ""))})
    try:
        db_booking = builder(db, booking_in, user)
        db_booking.status = BookingStatus.PENDING
        db_booking.payment_status = PaymentStatus.UNPAID
        db.add(db_booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Booking %s created: type=%s user=%s total=%s",
        db_booking.id,
        db_booking.type.value,
        user.id,
        db_booking.total_price,
    )
    notify(
        db,
        user.id,
        NotificationEvent.BOOKING_CREATED,
        booking_id=db_booking.id,
        booking_type=db_booking.type.value,
        total_price=db_booking.total_price,
    )
    return crud.booking.get_booking(db, db_booking.id)


def list_bookings(
    db: Session, user: models.User, filters: schemas.BookingFilters
) -> schemas.Page[schemas.BookingResponse]:
    limit = min(filters.limit, settings.MAX_PAGE_SIZE)
    items, total = crud.booking.list_bookings(db, user, filters, limit)
    return schemas.Page[schemas.BookingResponse](
        data=[schemas.BookingResponse.model_validate(b) for b in items],
        meta=schemas.build_page_meta(total, filters.page, limit),
    )


def get_booking(db: Session, booking_id: int, user: models.User) -> models.Booking:
    db_booking = crud.booking.get_visible_booking(db, booking_id, user)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})
    return db_booking


def update_booking_status(
    db: Session,
    booking_id: int,
    new_status: BookingStatus,
    user: models.User,
) -> models.Booking:
    db_booking = crud.booking.get_booking(db, booking_id)
    if db_booking is None:
        raise NotFoundError("Booking not found", {"booking_id": "Not found"})

    if user.role == UserRole.CUSTOMER:
        if db_booking.user_id != user.id:
            raise NotFoundError("Booking not found", {"booking_id": "Not found"})
        if new_status != BookingStatus.REJECTED:
            raise ForbiddenError(
                "Customers can only cancel their own bookings",
                {"status": "Only 'rejected' is allowed"},
            )
    elif user.role == UserRole.AGENT:
        if not crud.booking_touches_agent(db_booking, user.id):
            raise ForbiddenError(
                "You can only manage bookings for your own packages, hotels or flights",
                {"booking_id": "Not owned"},
            )

    if db_booking.status in TERMINAL_BOOKING_STATUSES:
        raise InvalidStateError(
            f"Booking is already {db_booking.status.value}",
            {"status": "Terminal state"},
        )
    if new_status not in STATUS_UPDATE_TARGETS:
        raise InvalidStateError(
            f"Status '{new_status.value}' cannot be set directly; use the cancellation or refund endpoints",
            {"status": "Not allowed"},
        )
    if new_status == db_booking.status:
        raise InvalidStateError(
            f"Booking is already {new_status.value}", {"status": "Unchanged"}
        )

    restore_quota = (
        new_status == BookingStatus.REJECTED
        and db_booking.payment_status == PaymentStatus.PAID
        and db_booking.package_id is not None
    )
    previous = db_booking.status
    try:
        db_booking.status = new_status
        if restore_quota:
            crud_catalog.increment_package_quota(db, db_booking.package_id, 1)
        if new_status == BookingStatus.REJECTED:
            crud_reschedule.reject_pending_for_booking(db, db_booking.id, utcnow())
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_booking)
    logger.info(
        "Booking %s status %s -> %s by user %s",
        db_booking.id,
        previous.value,
        new_status.value,
        user.id,
    )
    notify_booking_status_change(db, db_booking)
    return db_booking
