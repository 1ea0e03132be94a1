from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal

from ..models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    booking_id: int
    method: PaymentMethod
    amount: Decimal = Field(gt=0)


class PaymentRetry(BaseModel):
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    order_id: str
    method: PaymentMethod
    amount: Decimal
    proof_url: Optional[str] = None
    payment_date: Optional[datetime] = None
    transaction_status: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None
    redirect_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentInitResponse(BaseModel):
    payment: PaymentResponse
    token: str
    redirect_url: str


class PaymentDetailResponse(PaymentResponse):
    gateway_status: Optional[Dict[str, Any]] = None


class MidtransCallback(BaseModel):
    """Notification body Midtrans POSTs to the callback endpoint."""

    order_id: str
    status_code: str
    gross_amount: str
    signature_key: str
    transaction_status: str
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None
    transaction_time: Optional[str] = None
    fraud_status: Optional[str] = None

    model_config = {"extra": "allow"}


class CallbackAck(BaseModel):
    status: str
    booking_id: int
    payment_status: str
    booking_status: str
