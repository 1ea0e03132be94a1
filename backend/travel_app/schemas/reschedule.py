from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from ..models.booking_status import BookingStatus
from ..models.reschedule import RescheduleStatus
from .common import UTCDateTime


class RescheduleCreate(BaseModel):
    booking_id: int
    requested_date: UTCDateTime


class RescheduleResponse(BaseModel):
    id: int
    booking_id: int
    requested_date: datetime
    status: RescheduleStatus
    previous_booking_status: BookingStatus
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
