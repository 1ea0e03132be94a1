# backend/travel_app/models/catalog.py

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class TravelPackage(BaseModel):
    __tablename__ = "travel_packages"
    __table_args__ = (CheckConstraint("quota >= 0", name="ck_travel_packages_quota_non_negative"),)

    id            = Column(Integer, primary_key=True, index=True)
    agent_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title         = Column(String, nullable=False)
    destination   = Column(String, nullable=False)
    description   = Column(Text, nullable=True)
    price         = Column(Numeric(12, 2), nullable=False)
    # Only mutated through crud_catalog.decrement/increment_package_quota
    quota         = Column(Integer, nullable=False, default=0)
    duration_days = Column(Integer, nullable=True)

    agent    = relationship("User", back_populates="packages")
    bookings = relationship("Booking", back_populates="package")


class Hotel(BaseModel):
    __tablename__ = "hotels"

    id              = Column(Integer, primary_key=True, index=True)
    agent_id        = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name            = Column(String, nullable=False)
    city            = Column(String, nullable=False)
    address         = Column(String, nullable=True)
    price_per_night = Column(Numeric(12, 2), nullable=False)
    star_rating     = Column(Integer, nullable=True)

    agent = relationship("User", back_populates="hotels")


class Flight(BaseModel):
    __tablename__ = "flights"

    id             = Column(Integer, primary_key=True, index=True)
    agent_id       = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    airline_name   = Column(String, nullable=False)
    flight_number  = Column(String, nullable=False)
    origin         = Column(String, nullable=False)
    destination    = Column(String, nullable=False)
    departure_time = Column(DateTime, nullable=True)
    arrival_time   = Column(DateTime, nullable=True)
    price          = Column(Numeric(12, 2), nullable=False)

    agent = relationship("User", back_populates="flights")
