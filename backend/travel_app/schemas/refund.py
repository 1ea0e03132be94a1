from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime
from decimal import Decimal

from ..models.booking_status import BookingType
from ..models.refund import RefundMethod, RefundStatus
from .booking import BookingResponse
from .common import UTCDateTime


class RefundCreate(BaseModel):
    booking_id: int
    reason: str = Field(min_length=1)


class RefundProcess(BaseModel):
    status: Literal["approved", "rejected"]
    # Required when approving; checked by the refund service
    refund_method: Optional[RefundMethod] = None
    refund_proof: Optional[str] = None


class RefundFilters(BaseModel):
    status: Optional[RefundStatus] = None
    booking_type: Optional[BookingType] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class RefundResponse(BaseModel):
    id: int
    booking_id: int
    user_id: int
    amount: Decimal
    original_amount: Decimal
    reason: str
    status: RefundStatus
    processed_by: Optional[int] = None
    processed_at: Optional[datetime] = None
    refund_method: Optional[RefundMethod] = None
    refund_proof: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RefundDetailResponse(RefundResponse):
    booking: Optional[BookingResponse] = None
