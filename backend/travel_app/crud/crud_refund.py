from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.orm import Query, Session, selectinload
from typing import List, Optional, Tuple

from .. import models, schemas
from ..models.refund import RefundStatus
from ..models.user import UserRole
from .crud_booking import agent_owns_booking_clause


def _visible_refunds(db: Session, user: models.User) -> Query:
    query = db.query(models.Refund).join(models.Refund.booking)
    if user.role == UserRole.ADMIN:
        return query
    if user.role == UserRole.AGENT:
        return query.filter(agent_owns_booking_clause(user.id))
    return query.filter(models.Refund.user_id == user.id)


def _with_details(query: Query) -> Query:
    return query.options(
        selectinload(models.Refund.booking).selectinload(models.Booking.package),
        selectinload(models.Refund.booking).selectinload(models.Booking.hotel_items).selectinload(models.BookingHotel.hotel),
        selectinload(models.Refund.booking).selectinload(models.Booking.flight_items).selectinload(models.BookingFlight.flight),
        selectinload(models.Refund.booking).selectinload(models.Booking.payments),
    )


def get_refund(db: Session, refund_id: int) -> Optional[models.Refund]:
    return _with_details(db.query(models.Refund)).filter(models.Refund.id == refund_id).first()


def get_refund_for_booking(db: Session, booking_id: int) -> Optional[models.Refund]:
    return db.query(models.Refund).filter(models.Refund.booking_id == booking_id).first()


def get_visible_refund(db: Session, refund_id: int, user: models.User) -> Optional[models.Refund]:
    return (
        _with_details(_visible_refunds(db, user))
        .filter(models.Refund.id == refund_id)
        .first()
    )


def list_refunds(
    db: Session, user: models.User, filters: schemas.RefundFilters, limit: int
) -> Tuple[List[models.Refund], int]:
    query = _visible_refunds(db, user)
    if filters.status is not None:
        query = query.filter(models.Refund.status == filters.status)
    if filters.booking_type is not None:
        query = query.filter(models.Booking.type == filters.booking_type)
    if filters.start_date is not None:
        query = query.filter(models.Refund.created_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(models.Refund.created_at <= filters.end_date)

    total = query.with_entities(func.count(models.Refund.id)).scalar() or 0
    items = (
        _with_details(query)
        .order_by(models.Refund.created_at.desc(), models.Refund.id.desc())
        .offset((filters.page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def resolve_pending_refund(
    db: Session, refund_id: int, decision: RefundStatus, user_id: int, at: datetime
) -> bool:
    """Move a refund out of ``pending`` in a single conditional UPDATE.

    Returns ``False`` when another transaction resolved it first. Does not
    commit; the caller owns the surrounding transaction.
    """
    result = db.execute(
        update(models.Refund)
        .where(models.Refund.id == refund_id, models.Refund.status == RefundStatus.PENDING)
        .values(status=decision, processed_by=user_id, processed_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
