# backend/travel_app/models/user.py

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship
from .base import BaseModel
from .types import ValueEnum
import enum


class UserRole(str, enum.Enum):
    """Enumeration of all supported user roles."""

    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"

    @classmethod
    def _missing_(cls, value: object):
        """Accept upper-case role names from older tokens and fixtures."""
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class User(BaseModel):
    __tablename__ = "users"

    id           = Column(Integer, primary_key=True, index=True)
    email        = Column(String, unique=True, index=True, nullable=False)
    name         = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    role         = Column(ValueEnum(UserRole, name="userrole"), nullable=False, default=UserRole.CUSTOMER)
    is_active    = Column(Boolean, default=True)

    bookings = relationship(
        "Booking",
        foreign_keys="Booking.user_id",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    packages = relationship("TravelPackage", back_populates="agent")
    hotels   = relationship("Hotel", back_populates="agent")
    flights  = relationship("Flight", back_populates="agent")
