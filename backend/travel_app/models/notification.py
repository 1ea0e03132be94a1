from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .types import ValueEnum


class NotificationType(str, enum.Enum):
    BOOKING = "booking"
    PAYMENT = "payment"
    REFUND = "refund"
    SYSTEM = "system"


class NotificationEvent(str, enum.Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_STATUS_UPDATED = "booking_status_updated"
    BOOKING_CANCELLED = "booking_cancelled"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    RESCHEDULE_APPROVED = "reschedule_approved"
    RESCHEDULE_REJECTED = "reschedule_rejected"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    REFUND_REQUESTED = "refund_requested"
    REFUND_APPROVED = "refund_approved"
    REFUND_REJECTED = "refund_rejected"
    BROADCAST = "broadcast"


class Notification(BaseModel):
    __tablename__ = "notifications"

    id      = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type    = Column(ValueEnum(NotificationType, name="notificationtype"), nullable=False)
    event   = Column(String, nullable=False)
    message = Column(String, nullable=False)
    link    = Column(String, nullable=True)
    data    = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    user = relationship("User", backref="notifications")
