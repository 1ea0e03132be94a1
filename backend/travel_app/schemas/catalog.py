from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class TravelPackageBase(BaseModel):
    title: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(gt=0, decimal_places=2)
    duration_days: Optional[int] = Field(default=None, gt=0)


class TravelPackageCreate(TravelPackageBase):
    quota: int = Field(ge=0)


# Quota is deliberately absent: it only moves through the atomic adjust endpoint
class TravelPackageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    duration_days: Optional[int] = Field(default=None, gt=0)


class QuotaAdjust(BaseModel):
    delta: int = Field(description="Seats to add (positive) or withdraw (negative)")


class TravelPackageResponse(TravelPackageBase):
    id: int
    agent_id: int
    quota: int
    created_at: datetime

    model_config = {"from_attributes": True}


class HotelBase(BaseModel):
    name: str = Field(min_length=1)
    city: str = Field(min_length=1)
    address: Optional[str] = None
    price_per_night: Decimal = Field(gt=0, decimal_places=2)
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)


class HotelCreate(HotelBase):
    pass


class HotelUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    price_per_night: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)


class HotelResponse(HotelBase):
    id: int
    agent_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class FlightBase(BaseModel):
    airline_name: str = Field(min_length=1)
    flight_number: str = Field(min_length=1)
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Decimal = Field(gt=0, decimal_places=2)


class FlightCreate(FlightBase):
    pass


class FlightUpdate(BaseModel):
    airline_name: Optional[str] = Field(default=None, min_length=1)
    flight_number: Optional[str] = Field(default=None, min_length=1)
    origin: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)


class FlightResponse(FlightBase):
    id: int
    agent_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
