# backend/travel_app/api/api_catalog.py
# Travel packages, hotels and flights. Reads are public; writes belong to
# the owning agent (or an admin).

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..crud import crud_catalog
from ..models.user import UserRole
from ..utils import ForbiddenError, InvalidStateError, NotFoundError
from .dependencies import get_current_staff, get_db

router = APIRouter(tags=["catalog"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


def _ensure_owner(entity: Any, user: models.User, label: str) -> None:
    if user.role != UserRole.ADMIN and entity.agent_id != user.id:
        raise ForbiddenError(f"You can only manage your own {label}", {"agent_id": "Not owned"})


# ─── Packages ────────────────────────────────────────────────────────────────

@router.get("/packages", response_model=List[schemas.TravelPackageResponse])
def list_packages(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    destination: Optional[str] = None,
    agent_id: Optional[int] = None,
    db: Session = Depends(get_db),
) -> Any:
    return crud_catalog.list_packages(db, skip=skip, limit=limit, destination=destination, agent_id=agent_id)


@router.get("/packages/{package_id}", response_model=schemas.TravelPackageResponse)
def read_package(package_id: int, db: Session = Depends(get_db)) -> Any:
    package = crud_catalog.find_package(db, package_id)
    if package is None:
        raise NotFoundError("Travel package not found", {"package_id": "Not found"})
    return package


@router.post("/packages", response_model=schemas.TravelPackageResponse, status_code=status.HTTP_201_CREATED)
def create_package(
    package_in: schemas.TravelPackageCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    package = crud_catalog.create_package(db, package_in, current_user.id)
    logger.info("Package %s created by user %s with quota %s", package.id, current_user.id, package.quota)
    return package


@router.put("/packages/{package_id}", response_model=schemas.TravelPackageResponse)
def update_package(
    package_id: int,
    package_in: schemas.TravelPackageUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    package = crud_catalog.find_package(db, package_id)
    if package is None:
        raise NotFoundError("Travel package not found", {"package_id": "Not found"})
    _ensure_owner(package, current_user, "travel packages")
    return crud_catalog.update_entity(db, package, package_in.model_dump(exclude_unset=True))


@router.post("/packages/{package_id}/quota", response_model=schemas.TravelPackageResponse)
def adjust_package_quota(
    package_id: int,
    adjust_in: schemas.QuotaAdjust,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    """Add or withdraw seats without racing concurrent bookings."""
    package = crud_catalog.find_package(db, package_id)
    if package is None:
        raise NotFoundError("Travel package not found", {"package_id": "Not found"})
    _ensure_owner(package, current_user, "travel packages")
    try:
        if adjust_in.delta >= 0:
            crud_catalog.increment_package_quota(db, package.id, adjust_in.delta)
        elif not crud_catalog.decrement_package_quota(db, package.id, -adjust_in.delta):
            raise InvalidStateError(
                "Cannot withdraw more seats than remain", {"delta": "Exceeds remaining quota"}
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(package)
    logger.info("Package %s quota adjusted by %s to %s", package.id, adjust_in.delta, package.quota)
    return package


# ─── Hotels ──────────────────────────────────────────────────────────────────

@router.get("/hotels", response_model=List[schemas.HotelResponse])
def list_hotels(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    city: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Any:
    return crud_catalog.list_hotels(db, skip=skip, limit=limit, city=city)


@router.get("/hotels/{hotel_id}", response_model=schemas.HotelResponse)
def read_hotel(hotel_id: int, db: Session = Depends(get_db)) -> Any:
    hotel = crud_catalog.find_hotel(db, hotel_id)
    if hotel is None:
        raise NotFoundError("Hotel not found", {"hotel_id": "Not found"})
    return hotel


@router.post("/hotels", response_model=schemas.HotelResponse, status_code=status.HTTP_201_CREATED)
def create_hotel(
    hotel_in: schemas.HotelCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    return crud_catalog.create_hotel(db, hotel_in, current_user.id)


@router.put("/hotels/{hotel_id}", response_model=schemas.HotelResponse)
def update_hotel(
    hotel_id: int,
    hotel_in: schemas.HotelUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    hotel = crud_catalog.find_hotel(db, hotel_id)
    if hotel is None:
        raise NotFoundError("Hotel not found", {"hotel_id": "Not found"})
    _ensure_owner(hotel, current_user, "hotels")
    return crud_catalog.update_entity(db, hotel, hotel_in.model_dump(exclude_unset=True))


# ─── Flights ─────────────────────────────────────────────────────────────────

@router.get("/flights", response_model=List[schemas.FlightResponse])
def list_flights(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Any:
    return crud_catalog.list_flights(db, skip=skip, limit=limit, origin=origin, destination=destination)


@router.get("/flights/{flight_id}", response_model=schemas.FlightResponse)
def read_flight(flight_id: int, db: Session = Depends(get_db)) -> Any:
    flight = crud_catalog.find_flight(db, flight_id)
    if flight is None:
        raise NotFoundError("Flight not found", {"flight_id": "Not found"})
    return flight


@router.post("/flights", response_model=schemas.FlightResponse, status_code=status.HTTP_201_CREATED)
def create_flight(
    flight_in: schemas.FlightCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    return crud_catalog.create_flight(db, flight_in, current_user.id)


@router.put("/flights/{flight_id}", response_model=schemas.FlightResponse)
def update_flight(
    flight_id: int,
    flight_in: schemas.FlightUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    flight = crud_catalog.find_flight(db, flight_id)
    if flight is None:
        raise NotFoundError("Flight not found", {"flight_id": "Not found"})
    _ensure_owner(flight, current_user, "flights")
    return crud_catalog.update_entity(db, flight, flight_in.model_dump(exclude_unset=True))
