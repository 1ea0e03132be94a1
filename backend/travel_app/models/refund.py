# backend/travel_app/models/refund.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .types import ValueEnum


class RefundStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RefundMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    E_WALLET = "e_wallet"
    CREDIT_CARD = "credit_card"
    ORIGINAL_PAYMENT = "original_payment"


class Refund(BaseModel):
    __tablename__ = "refunds"
    # At most one refund per booking, enforced by the database
    __table_args__ = (UniqueConstraint("booking_id", name="uq_refunds_booking_once"),)

    id                 = Column(Integer, primary_key=True, index=True)
    booking_id         = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    user_id            = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount             = Column(Numeric(12, 2), nullable=False)
    original_amount    = Column(Numeric(12, 2), nullable=False)
    reason             = Column(String, nullable=False)
    status             = Column(
        ValueEnum(RefundStatus, name="refundstatus"),
        default=RefundStatus.PENDING,
        nullable=False,
        index=True,
    )
    processed_by       = Column(Integer, ForeignKey("users.id"), nullable=True)
    processed_at       = Column(DateTime, nullable=True)
    refund_method      = Column(ValueEnum(RefundMethod, name="refundmethod"), nullable=True)
    refund_proof       = Column(String, nullable=True)
    gateway_refund_key = Column(String, nullable=True)

    booking   = relationship("Booking", back_populates="refund")
    user      = relationship("User", foreign_keys=[user_id])
    processor = relationship("User", foreign_keys=[processed_by])
