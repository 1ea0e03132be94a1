# backend/travel_app/models/booking.py

from sqlalchemy import Column, Integer, DateTime, Numeric, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus, BookingType, PaymentStatus
from .types import ValueEnum
import enum


class SeatClass(str, enum.Enum):
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"


class Booking(BaseModel):
    __tablename__ = "bookings"

    id             = Column(Integer, primary_key=True, index=True)
    user_id        = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id     = Column(Integer, ForeignKey("travel_packages.id"), nullable=True, index=True)
    type           = Column(ValueEnum(BookingType, name="bookingtype"), nullable=False)
    travel_date    = Column(DateTime, nullable=False, index=True)
    # Sum of line items at creation; never mutated afterwards
    total_price    = Column(Numeric(12, 2), nullable=False)
    status         = Column(
        ValueEnum(BookingStatus, name="bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_status = Column(
        ValueEnum(PaymentStatus, name="paymentstatus"),
        default=PaymentStatus.UNPAID,
        nullable=False,
        index=True,
    )
    cancelled_at        = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)

    # Relationships
    user         = relationship("User", foreign_keys=[user_id], back_populates="bookings")
    package      = relationship("TravelPackage", back_populates="bookings")
    hotel_items  = relationship("BookingHotel", back_populates="booking", cascade="all, delete-orphan")
    flight_items = relationship("BookingFlight", back_populates="booking", cascade="all, delete-orphan")
    payments     = relationship(
        "Payment",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )
    reschedules  = relationship(
        "Reschedule",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Reschedule.id",
    )
    refund       = relationship("Refund", back_populates="booking", uselist=False)


class BookingHotel(BaseModel):
    __tablename__ = "booking_hotels"

    id             = Column(Integer, primary_key=True, index=True)
    booking_id     = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    hotel_id       = Column(Integer, ForeignKey("hotels.id"), nullable=False, index=True)
    check_in_date  = Column(DateTime, nullable=False)
    check_out_date = Column(DateTime, nullable=False)
    nights         = Column(Integer, nullable=False)
    total_price    = Column(Numeric(12, 2), nullable=False)

    booking = relationship("Booking", back_populates="hotel_items")
    hotel   = relationship("Hotel")


class BookingFlight(BaseModel):
    __tablename__ = "booking_flights"

    id             = Column(Integer, primary_key=True, index=True)
    booking_id     = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    flight_id      = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    passenger_name = Column(String, nullable=False)
    seat_class     = Column(ValueEnum(SeatClass, name="seatclass"), nullable=False)
    total_price    = Column(Numeric(12, 2), nullable=False)

    booking = relationship("Booking", back_populates="flight_items")
    flight  = relationship("Flight")
