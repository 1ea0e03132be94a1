# backend/travel_app/models/payment.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .types import ValueEnum


class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    E_WALLET = "e_wallet"
    VIRTUAL_ACCOUNT = "virtual_account"


class Payment(BaseModel):
    """One gateway transaction attempt for a booking.

    ``payment_date`` stays null until a settlement callback confirms the
    attempt; ``transaction_status`` mirrors the last status the gateway sent.
    """

    __tablename__ = "payments"

    id                 = Column(Integer, primary_key=True, index=True)
    booking_id         = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id           = Column(String, unique=True, nullable=False, index=True)
    method             = Column(ValueEnum(PaymentMethod, name="paymentmethod"), nullable=False)
    amount             = Column(Numeric(12, 2), nullable=False)
    proof_url          = Column(String, nullable=True)
    payment_date       = Column(DateTime, nullable=True)
    transaction_status = Column(String, nullable=True)
    transaction_id     = Column(String, nullable=True)
    payment_type       = Column(String, nullable=True)
    snap_token         = Column(String, nullable=True)
    redirect_url       = Column(String, nullable=True)

    booking = relationship("Booking", back_populates="payments")
