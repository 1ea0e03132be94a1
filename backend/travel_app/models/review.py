# backend/travel_app/models/review.py

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from typing import Optional

from .base import BaseModel


class ReviewTarget(str, enum.Enum):
    PACKAGE = "package"
    HOTEL = "hotel"
    FLIGHT = "flight"


class Review(BaseModel):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint(
            "(CASE WHEN package_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN hotel_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN flight_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_reviews_single_target",
        ),
        # One review per user per catalog item
        UniqueConstraint("user_id", "package_id", name="uq_reviews_user_package"),
        UniqueConstraint("user_id", "hotel_id", name="uq_reviews_user_hotel"),
        UniqueConstraint("user_id", "flight_id", name="uq_reviews_user_flight"),
    )

    id         = Column(Integer, primary_key=True, index=True)
    user_id    = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("travel_packages.id", ondelete="CASCADE"), nullable=True, index=True)
    hotel_id   = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=True, index=True)
    flight_id  = Column(Integer, ForeignKey("flights.id", ondelete="CASCADE"), nullable=True, index=True)
    rating     = Column(Integer, nullable=False)
    comment    = Column(Text, nullable=False)

    user    = relationship("User")
    package = relationship("TravelPackage")
    hotel   = relationship("Hotel")
    flight  = relationship("Flight")

    @property
    def target_type(self) -> ReviewTarget:
        if self.package_id is not None:
            return ReviewTarget.PACKAGE
        if self.hotel_id is not None:
            return ReviewTarget.HOTEL
        return ReviewTarget.FLIGHT

    @property
    def target_id(self) -> int:
        return self.package_id or self.hotel_id or self.flight_id

    @property
    def target_name(self) -> Optional[str]:
        if self.package is not None:
            return self.package.title
        if self.hotel is not None:
            return self.hotel.name
        if self.flight is not None:
            return f"{self.flight.airline_name} {self.flight.flight_number}"
        return None
