from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, Session, selectinload
from typing import List, Optional, Tuple

from .. import models, schemas
from ..models.booking_status import BookingStatus, PaymentStatus, TERMINAL_BOOKING_STATUSES
from ..models.user import UserRole


def agent_owns_booking_clause(agent_id: int):
    """SQL predicate: the booking touches a package, hotel or flight owned by ``agent_id``."""
    return or_(
        models.Booking.package.has(models.TravelPackage.agent_id == agent_id),
        models.Booking.hotel_items.any(
            models.BookingHotel.hotel.has(models.Hotel.agent_id == agent_id)
        ),
        models.Booking.flight_items.any(
            models.BookingFlight.flight.has(models.Flight.agent_id == agent_id)
        ),
    )


def booking_touches_agent(booking: models.Booking, agent_id: int) -> bool:
    """In-memory twin of :func:`agent_owns_booking_clause` for a loaded booking."""
    if booking.package is not None and booking.package.agent_id == agent_id:
        return True
    if any(item.hotel.agent_id == agent_id for item in booking.hotel_items):
        return True
    return any(item.flight.agent_id == agent_id for item in booking.flight_items)


class CRUDBooking:
    def _with_details(self, query: Query) -> Query:
        return query.options(
            selectinload(models.Booking.user),
            selectinload(models.Booking.package),
            selectinload(models.Booking.hotel_items).selectinload(models.BookingHotel.hotel),
            selectinload(models.Booking.flight_items).selectinload(models.BookingFlight.flight),
        )

    def visible_to(self, db: Session, user: models.User) -> Query:
        """Bookings ``user`` may see: own (customer), own catalog (agent), all (admin)."""
        query = db.query(models.Booking)
        if user.role == UserRole.ADMIN:
            return query
        if user.role == UserRole.AGENT:
            return query.filter(agent_owns_booking_clause(user.id))
        return query.filter(models.Booking.user_id == user.id)

    def get_booking(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return (
            self._with_details(db.query(models.Booking))
            .filter(models.Booking.id == booking_id)
            .first()
        )

    def get_owned_booking(
        self, db: Session, booking_id: int, user_id: int
    ) -> Optional[models.Booking]:
        return (
            self._with_details(db.query(models.Booking))
            .filter(models.Booking.id == booking_id, models.Booking.user_id == user_id)
            .first()
        )

    def get_visible_booking(
        self, db: Session, booking_id: int, user: models.User
    ) -> Optional[models.Booking]:
        return (
            self._with_details(self.visible_to(db, user))
            .filter(models.Booking.id == booking_id)
            .first()
        )

    def list_bookings(
        self,
        db: Session,
        user: models.User,
        filters: schemas.BookingFilters,
        limit: int,
    ) -> Tuple[List[models.Booking], int]:
        query = self.visible_to(db, user)
        if filters.status is not None:
            query = query.filter(models.Booking.status == filters.status)
        if filters.payment_status is not None:
            query = query.filter(models.Booking.payment_status == filters.payment_status)
        if filters.type is not None:
            query = query.filter(models.Booking.type == filters.type)
        if filters.start_date is not None:
            query = query.filter(models.Booking.travel_date >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(models.Booking.travel_date <= filters.end_date)

        total = query.with_entities(func.count(models.Booking.id)).scalar() or 0
        items = (
            self._with_details(query)
            .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
            .offset((filters.page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def mark_paid(self, db: Session, booking_id: int) -> bool:
        """Flip the booking to paid unless some payment already did.

        The affected-row count tells the caller whether this settlement is the
        one that confirms the booking. Does not commit.
        """
        result = db.execute(
            update(models.Booking)
            .where(models.Booking.id == booking_id, models.Booking.payment_status != PaymentStatus.PAID)
            .values(payment_status=PaymentStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def confirm_if_live(self, db: Session, booking_id: int) -> bool:
        result = db.execute(
            update(models.Booking)
            .where(
                models.Booking.id == booking_id,
                models.Booking.status.notin_(list(TERMINAL_BOOKING_STATUSES)),
            )
            .values(status=BookingStatus.CONFIRMED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def cancel_if_live(self, db: Session, booking_id: int, reason: str, at: datetime) -> bool:
        """Cancel only a booking that has not already reached a terminal status."""
        result = db.execute(
            update(models.Booking)
            .where(
                models.Booking.id == booking_id,
                models.Booking.status.notin_(list(TERMINAL_BOOKING_STATUSES)),
            )
            .values(status=BookingStatus.CANCELLED, cancelled_at=at, cancellation_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_unpaid(self, db: Session, booking_id: int) -> bool:
        """Reset a failed attempt to unpaid; a paid booking is left alone."""
        result = db.execute(
            update(models.Booking)
            .where(models.Booking.id == booking_id, models.Booking.payment_status != PaymentStatus.PAID)
            .values(payment_status=PaymentStatus.UNPAID)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


booking = CRUDBooking()
