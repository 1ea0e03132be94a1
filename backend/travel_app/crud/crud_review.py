from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, selectinload
from typing import Dict, List, Optional, Tuple

from .. import models, schemas
from ..models.booking_status import BookingStatus, PaymentStatus
from ..models.review import ReviewTarget

_TARGET_COLUMNS = {
    ReviewTarget.PACKAGE: models.Review.package_id,
    ReviewTarget.HOTEL: models.Review.hotel_id,
    ReviewTarget.FLIGHT: models.Review.flight_id,
}

_SORT_ORDERS = {
    "newest": (models.Review.created_at.desc(), models.Review.id.desc()),
    "oldest": (models.Review.created_at.asc(), models.Review.id.asc()),
    "rating_high": (models.Review.rating.desc(), models.Review.id.desc()),
    "rating_low": (models.Review.rating.asc(), models.Review.id.desc()),
}


def _with_details(query: Query) -> Query:
    return query.options(
        selectinload(models.Review.user),
        selectinload(models.Review.package),
        selectinload(models.Review.hotel),
        selectinload(models.Review.flight),
    )


def target_column(target: ReviewTarget):
    return _TARGET_COLUMNS[ReviewTarget(target)]


def get_review(db: Session, review_id: int) -> Optional[models.Review]:
    return _with_details(db.query(models.Review)).filter(models.Review.id == review_id).first()


def find_user_review(
    db: Session, user_id: int, target: ReviewTarget, target_id: int
) -> Optional[models.Review]:
    return (
        db.query(models.Review)
        .filter(models.Review.user_id == user_id, target_column(target) == target_id)
        .first()
    )


def has_completed_booking(
    db: Session, user_id: int, target: ReviewTarget, target_id: int, now: datetime
) -> bool:
    """True when ``user_id`` holds a confirmed, paid booking of the item that
    has already taken place.

    Packages and flights are done once the travel date has passed; a hotel
    stay is done once its check-out date has passed.
    """
    query = db.query(models.Booking.id).filter(
        models.Booking.user_id == user_id,
        models.Booking.status == BookingStatus.CONFIRMED,
        models.Booking.payment_status == PaymentStatus.PAID,
    )
    target = ReviewTarget(target)
    if target == ReviewTarget.PACKAGE:
        query = query.filter(models.Booking.package_id == target_id, models.Booking.travel_date < now)
    elif target == ReviewTarget.HOTEL:
        query = query.filter(
            models.Booking.hotel_items.any(
                (models.BookingHotel.hotel_id == target_id) & (models.BookingHotel.check_out_date < now)
            )
        )
    else:
        query = query.filter(
            models.Booking.flight_items.any(models.BookingFlight.flight_id == target_id),
            models.Booking.travel_date < now,
        )
    return query.first() is not None


def list_reviews_for(
    db: Session,
    target: ReviewTarget,
    target_id: int,
    filters: schemas.ReviewFilters,
    limit: int,
) -> Tuple[List[models.Review], int]:
    query = db.query(models.Review).filter(target_column(target) == target_id)
    if filters.rating is not None:
        query = query.filter(models.Review.rating == filters.rating)

    total = query.with_entities(func.count(models.Review.id)).scalar() or 0
    items = (
        _with_details(query)
        .order_by(*_SORT_ORDERS[filters.sort_by])
        .offset((filters.page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def rating_counts(db: Session, target: ReviewTarget, target_id: int) -> Dict[int, int]:
    """Number of reviews per star rating, ignoring any list filters."""
    rows = (
        db.query(models.Review.rating, func.count(models.Review.id))
        .filter(target_column(target) == target_id)
        .group_by(models.Review.rating)
        .all()
    )
    return {rating: count for rating, count in rows}


def list_user_reviews(
    db: Session, user_id: int, page: int, limit: int
) -> Tuple[List[models.Review], int]:
    query = db.query(models.Review).filter(models.Review.user_id == user_id)
    total = query.with_entities(func.count(models.Review.id)).scalar() or 0
    items = (
        _with_details(query)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_testimonial(db: Session, testimonial_id: int) -> Optional[models.Testimonial]:
    return (
        db.query(models.Testimonial)
        .options(selectinload(models.Testimonial.user))
        .filter(models.Testimonial.id == testimonial_id)
        .first()
    )


def list_testimonials(
    db: Session, page: int, limit: int, user_id: Optional[int] = None
) -> Tuple[List[models.Testimonial], int]:
    query = db.query(models.Testimonial)
    if user_id is not None:
        query = query.filter(models.Testimonial.user_id == user_id)
    total = query.with_entities(func.count(models.Testimonial.id)).scalar() or 0
    items = (
        query.options(selectinload(models.Testimonial.user))
        .order_by(models.Testimonial.created_at.desc(), models.Testimonial.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total
