from pydantic import BaseModel, Field
from typing import Annotated, Dict, Literal, Optional
from datetime import datetime

from ..models.review import ReviewTarget
from .common import Page

Rating = Annotated[int, Field(ge=1, le=5)]


class ReviewCreate(BaseModel):
    rating: Rating
    comment: str = Field(min_length=10, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: Optional[Rating] = None
    comment: Optional[str] = Field(default=None, min_length=10, max_length=1000)


class ReviewFilters(BaseModel):
    rating: Optional[Rating] = None
    sort_by: Literal["newest", "oldest", "rating_high", "rating_low"] = "newest"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class ReviewAuthor(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    target_type: ReviewTarget
    target_id: int
    target_name: Optional[str] = None
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime
    user: ReviewAuthor

    model_config = {"from_attributes": True}


class RatingSummary(BaseModel):
    total_reviews: int
    average_rating: float
    # Keyed "5" down to "1"
    rating_distribution: Dict[str, int]


class ReviewListResponse(Page[ReviewResponse]):
    summary: RatingSummary


class TestimonialIn(BaseModel):
    content: str = Field(min_length=20, max_length=2000)


class TestimonialResponse(BaseModel):
    id: int
    user_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    user: ReviewAuthor

    model_config = {"from_attributes": True}
