# backend/travel_app/models/reschedule.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .booking_status import BookingStatus
from .types import ValueEnum


class RescheduleStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Reschedule(BaseModel):
    __tablename__ = "reschedules"

    id             = Column(Integer, primary_key=True, index=True)
    booking_id     = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_date = Column(DateTime, nullable=False)
    status         = Column(
        ValueEnum(RescheduleStatus, name="reschedulestatus"),
        default=RescheduleStatus.PENDING,
        nullable=False,
        index=True,
    )
    # Booking status before the request forced it to pending; restored on rejection
    previous_booking_status = Column(ValueEnum(BookingStatus, name="bookingstatus"), nullable=False)
    resolved_by    = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_at    = Column(DateTime, nullable=True)

    booking  = relationship("Booking", back_populates="reschedules")
    resolver = relationship("User", foreign_keys=[resolved_by])
