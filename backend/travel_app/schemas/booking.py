from pydantic import BaseModel, Field, model_validator
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from decimal import Decimal

from ..models.booking import SeatClass
from ..models.booking_status import BookingStatus, BookingType, PaymentStatus
from .common import UTCDateTime
from .user import UserSummary


class HotelStayIn(BaseModel):
    hotel_id: int
    check_in_date: UTCDateTime
    check_out_date: UTCDateTime
    nights: int = Field(gt=0)

    @model_validator(mode="after")
    def check_dates(self) -> "HotelStayIn":
        if self.check_in_date >= self.check_out_date:
            raise ValueError("check_in_date must be before check_out_date")
        return self


class FlightSegmentIn(BaseModel):
    flight_id: int
    passenger_name: str = Field(min_length=1)
    seat_class: SeatClass


# One request shape per booking variant, selected by ``type``
class PackageBookingCreate(BaseModel):
    type: Literal["package"]
    package_id: int
    travel_date: UTCDateTime


class HotelBookingCreate(BaseModel):
    type: Literal["hotel"]
    hotels: List[HotelStayIn] = Field(min_length=1)
    travel_date: Optional[UTCDateTime] = None


class FlightBookingCreate(BaseModel):
    type: Literal["flight"]
    flights: List[FlightSegmentIn] = Field(min_length=1)
    travel_date: UTCDateTime


class CustomBookingCreate(BaseModel):
    type: Literal["custom"]
    hotels: List[HotelStayIn] = Field(default_factory=list)
    flights: List[FlightSegmentIn] = Field(default_factory=list)
    travel_date: Optional[UTCDateTime] = None

    @model_validator(mode="after")
    def require_line_items(self) -> "CustomBookingCreate":
        if not self.hotels and not self.flights:
            raise ValueError("custom bookings need at least one hotel or flight")
        if self.travel_date is None and not self.hotels:
            raise ValueError("travel_date is required when no hotel stay is booked")
        return self


BookingCreate = Annotated[
    Union[PackageBookingCreate, HotelBookingCreate, FlightBookingCreate, CustomBookingCreate],
    Field(discriminator="type"),
]


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingCancel(BaseModel):
    reason: str = Field(min_length=1)
    request_refund: bool = False


class PackageSummary(BaseModel):
    id: int
    title: str
    destination: str
    agent_id: int

    model_config = {"from_attributes": True}


class BookingHotelResponse(BaseModel):
    id: int
    hotel_id: int
    check_in_date: datetime
    check_out_date: datetime
    nights: int
    total_price: Decimal

    model_config = {"from_attributes": True}


class BookingFlightResponse(BaseModel):
    id: int
    flight_id: int
    passenger_name: str
    seat_class: SeatClass
    total_price: Decimal

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    user_id: int
    package_id: Optional[int] = None
    type: BookingType
    travel_date: datetime
    total_price: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    user: Optional[UserSummary] = None
    package: Optional[PackageSummary] = None
    hotel_items: List[BookingHotelResponse] = []
    flight_items: List[BookingFlightResponse] = []

    model_config = {"from_attributes": True}


class BookingFilters(BaseModel):
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    type: Optional[BookingType] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
