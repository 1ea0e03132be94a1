"""Catalog reviews and site testimonials.

A review is tied to one package, hotel or flight and may only be written by
a customer who has completed a booking of that item, once per item.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..core.config import settings
from ..crud import crud_catalog, crud_review
from ..models.base import utcnow
from ..models.review import ReviewTarget
from ..models.user import UserRole
from ..utils.errors import ConflictError, ForbiddenError, InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)

_FINDERS = {
    ReviewTarget.PACKAGE: crud_catalog.find_package,
    ReviewTarget.HOTEL: crud_catalog.find_hotel,
    ReviewTarget.FLIGHT: crud_catalog.find_flight,
}

_LABELS = {
    ReviewTarget.PACKAGE: "Travel package",
    ReviewTarget.HOTEL: "Hotel",
    ReviewTarget.FLIGHT: "Flight",
}


def _ensure_target(db: Session, target: ReviewTarget, target_id: int) -> None:
    if _FINDERS[target](db, target_id) is None:
        raise NotFoundError(f"{_LABELS[target]} not found", {f"{target.value}_id": "Not found"})


def summarize_ratings(counts: dict) -> schemas.RatingSummary:
    total = sum(counts.values())
    if total:
        mean = Decimal(sum(r * n for r, n in counts.items())) / Decimal(total)
        average = float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    else:
        average = 0.0
    return schemas.RatingSummary(
        total_reviews=total,
        average_rating=average,
        rating_distribution={str(r): counts.get(r, 0) for r in range(5, 0, -1)},
    )


def create_review(
    db: Session,
    target: ReviewTarget,
    target_id: int,
    review_in: schemas.ReviewCreate,
    user: models.User,
) -> models.Review:
    target = ReviewTarget(target)
    _ensure_target(db, target, target_id)
    if not crud_review.has_completed_booking(db, user.id, target, target_id, utcnow()):
        raise ForbiddenError(
            f"You can only review a {target.value} you have booked and completed",
            {f"{target.value}_id": "No completed booking"},
        )
    if crud_review.find_user_review(db, user.id, target, target_id) is not None:
        raise ConflictError(
            f"You have already reviewed this {target.value}", {f"{target.value}_id": "Duplicate"}
        )

    review = models.Review(user_id=user.id, rating=review_in.rating, comment=review_in.comment)
    setattr(review, f"{target.value}_id", target_id)
    try:
        db.add(review)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            f"You have already reviewed this {target.value}", {f"{target.value}_id": "Duplicate"}
        )
    except Exception:
        db.rollback()
        raise
    logger.info("Review %s of %s %s by user %s", review.id, target.value, target_id, user.id)
    return crud_review.get_review(db, review.id)


def list_reviews(
    db: Session, target: ReviewTarget, target_id: int, filters: schemas.ReviewFilters
) -> schemas.ReviewListResponse:
    target = ReviewTarget(target)
    _ensure_target(db, target, target_id)
    limit = min(filters.limit, settings.MAX_PAGE_SIZE)
    items, total = crud_review.list_reviews_for(db, target, target_id, filters, limit)
    return schemas.ReviewListResponse(
        data=[schemas.ReviewResponse.model_validate(r) for r in items],
        meta=schemas.build_page_meta(total, filters.page, limit),
        summary=summarize_ratings(crud_review.rating_counts(db, target, target_id)),
    )


def list_user_reviews(
    db: Session, user: models.User, page: int, limit: int
) -> schemas.Page[schemas.ReviewResponse]:
    limit = min(limit, settings.MAX_PAGE_SIZE)
    items, total = crud_review.list_user_reviews(db, user.id, page, limit)
    return schemas.Page[schemas.ReviewResponse](
        data=[schemas.ReviewResponse.model_validate(r) for r in items],
        meta=schemas.build_page_meta(total, page, limit),
    )


def _owned_review(db: Session, review_id: int, user: models.User, action: str) -> models.Review:
    review = crud_review.get_review(db, review_id)
    if review is None:
        raise NotFoundError("Review not found", {"review_id": "Not found"})
    if review.user_id != user.id:
        raise ForbiddenError(f"You can only {action} your own reviews", {"review_id": "Not owned"})
    return review


def update_review(
    db: Session, review_id: int, review_in: schemas.ReviewUpdate, user: models.User
) -> models.Review:
    review = _owned_review(db, review_id, user, "update")
    changes = review_in.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise InvalidRequestError("Nothing to update", {"review": "Provide a rating or comment"})
    try:
        for field, value in changes.items():
            setattr(review, field, value)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(review)
    return review


def delete_review(db: Session, review_id: int, user: models.User) -> None:
    review = _owned_review(db, review_id, user, "delete")
    try:
        db.delete(review)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Review %s deleted by user %s", review_id, user.id)


def create_testimonial(db: Session, content: str, user: models.User) -> models.Testimonial:
    testimonial = models.Testimonial(user_id=user.id, content=content)
    try:
        db.add(testimonial)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return crud_review.get_testimonial(db, testimonial.id)


def list_testimonials(db: Session, page: int, limit: int) -> schemas.Page[schemas.TestimonialResponse]:
    limit = min(limit, settings.MAX_PAGE_SIZE)
    items, total = crud_review.list_testimonials(db, page, limit)
    return schemas.Page[schemas.TestimonialResponse](
        data=[schemas.TestimonialResponse.model_validate(t) for t in items],
        meta=schemas.build_page_meta(total, page, limit),
    )


def list_user_testimonials(db: Session, user: models.User) -> List[models.Testimonial]:
    items, _ = crud_review.list_testimonials(db, 1, settings.MAX_PAGE_SIZE, user_id=user.id)
    return items


def update_testimonial(
    db: Session, testimonial_id: int, content: str, user: models.User
) -> models.Testimonial:
    testimonial = crud_review.get_testimonial(db, testimonial_id)
    if testimonial is None:
        raise NotFoundError("Testimonial not found", {"testimonial_id": "Not found"})
    if testimonial.user_id != user.id:
        raise ForbiddenError("You can only update your own testimonials", {"testimonial_id": "Not owned"})
    try:
        testimonial.content = content
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(testimonial)
    return testimonial


def delete_testimonial(db: Session, testimonial_id: int, user: models.User) -> None:
    """Authors delete their own testimonials; admins may remove any."""
    testimonial = crud_review.get_testimonial(db, testimonial_id)
    if testimonial is None:
        raise NotFoundError("Testimonial not found", {"testimonial_id": "Not found"})
    if testimonial.user_id != user.id and user.role != UserRole.ADMIN:
        raise ForbiddenError("You can only delete your own testimonials", {"testimonial_id": "Not owned"})
    try:
        db.delete(testimonial)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Testimonial %s deleted by user %s", testimonial_id, user.id)
