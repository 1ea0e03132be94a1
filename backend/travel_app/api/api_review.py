# backend/travel_app/api/api_review.py
# Reviews of packages, hotels and flights plus site testimonials. Listings
# are public; writing needs a signed-in user.

import enum
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models.review import ReviewTarget
from ..services import review_service
from .dependencies import get_current_user, get_db

router = APIRouter(tags=["reviews"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


class ReviewTargetPath(str, enum.Enum):
    PACKAGES = "packages"
    HOTELS = "hotels"
    FLIGHTS = "flights"


_TARGETS = {
    ReviewTargetPath.PACKAGES: ReviewTarget.PACKAGE,
    ReviewTargetPath.HOTELS: ReviewTarget.HOTEL,
    ReviewTargetPath.FLIGHTS: ReviewTarget.FLIGHT,
}


def review_filters(
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort_by: str = Query("newest", pattern="^(newest|oldest|rating_high|rating_low)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
) -> schemas.ReviewFilters:
    return schemas.ReviewFilters(rating=rating, sort_by=sort_by, page=page, limit=limit)


# ─── Reviews ─────────────────────────────────────────────────────────────────

@router.get("/reviews/me", response_model=schemas.Page[schemas.ReviewResponse])
def read_my_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return review_service.list_user_reviews(db, current_user, page, limit)


@router.post(
    "/reviews/{target}/{target_id}",
    response_model=schemas.ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_review(
    target: ReviewTargetPath,
    target_id: int,
    review_in: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Review a package, hotel or flight the caller has completed a booking of."""
    return review_service.create_review(db, _TARGETS[target], target_id, review_in, current_user)


@router.get("/reviews/{target}/{target_id}", response_model=schemas.ReviewListResponse)
def list_reviews(
    target: ReviewTargetPath,
    target_id: int,
    filters: schemas.ReviewFilters = Depends(review_filters),
    db: Session = Depends(get_db),
) -> Any:
    return review_service.list_reviews(db, _TARGETS[target], target_id, filters)


@router.put("/reviews/{review_id}", response_model=schemas.ReviewResponse)
def update_review(
    review_id: int,
    review_in: schemas.ReviewUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return review_service.update_review(db, review_id, review_in, current_user)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    review_service.delete_review(db, review_id, current_user)


# ─── Testimonials ────────────────────────────────────────────────────────────

@router.get("/testimonials", response_model=schemas.Page[schemas.TestimonialResponse])
def list_testimonials(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
) -> Any:
    return review_service.list_testimonials(db, page, limit)


@router.get("/testimonials/me", response_model=List[schemas.TestimonialResponse])
def read_my_testimonials(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return review_service.list_user_testimonials(db, current_user)


@router.post(
    "/testimonials",
    response_model=schemas.TestimonialResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_testimonial(
    testimonial_in: schemas.TestimonialIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return review_service.create_testimonial(db, testimonial_in.content, current_user)


@router.put("/testimonials/{testimonial_id}", response_model=schemas.TestimonialResponse)
def update_testimonial(
    testimonial_id: int,
    testimonial_in: schemas.TestimonialIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return review_service.update_testimonial(db, testimonial_id, testimonial_in.content, current_user)


@router.delete("/testimonials/{testimonial_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_testimonial(
    testimonial_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    review_service.delete_testimonial(db, testimonial_id, current_user)
