from sqlalchemy import update
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import models, schemas


def find_package(db: Session, package_id: int) -> Optional[models.TravelPackage]:
    return db.get(models.TravelPackage, package_id)


def find_hotel(db: Session, hotel_id: int) -> Optional[models.Hotel]:
    return db.get(models.Hotel, hotel_id)


def find_flight(db: Session, flight_id: int) -> Optional[models.Flight]:
    return db.get(models.Flight, flight_id)


def decrement_package_quota(db: Session, package_id: int, n: int = 1) -> bool:
    """Take ``n`` seats from a package in a single conditional UPDATE.

    Returns ``False`` when fewer than ``n`` seats remain. Does not commit; the
    caller owns the surrounding transaction.
    """
    result = db.execute(
        update(models.TravelPackage)
        .where(models.TravelPackage.id == package_id, models.TravelPackage.quota >= n)
        .values(quota=models.TravelPackage.quota - n)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_package_quota(db: Session, package_id: int, n: int = 1) -> bool:
    """Return ``n`` seats to a package. Does not commit."""
    result = db.execute(
        update(models.TravelPackage)
        .where(models.TravelPackage.id == package_id)
        .values(quota=models.TravelPackage.quota + n)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_packages(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    destination: Optional[str] = None,
    agent_id: Optional[int] = None,
) -> List[models.TravelPackage]:
    query = db.query(models.TravelPackage)
    if destination:
        query = query.filter(models.TravelPackage.destination.ilike(f"%{destination}%"))
    if agent_id is not None:
        query = query.filter(models.TravelPackage.agent_id == agent_id)
    return query.order_by(models.TravelPackage.id).offset(skip).limit(limit).all()


def create_package(
    db: Session, package_in: schemas.TravelPackageCreate, agent_id: int
) -> models.TravelPackage:
    db_obj = models.TravelPackage(**package_in.model_dump(), agent_id=agent_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def list_hotels(
    db: Session, skip: int = 0, limit: int = 100, city: Optional[str] = None
) -> List[models.Hotel]:
    query = db.query(models.Hotel)
    if city:
        query = query.filter(models.Hotel.city.ilike(f"%{city}%"))
    return query.order_by(models.Hotel.id).offset(skip).limit(limit).all()


def create_hotel(db: Session, hotel_in: schemas.HotelCreate, agent_id: int) -> models.Hotel:
    db_obj = models.Hotel(**hotel_in.model_dump(), agent_id=agent_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def list_flights(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
) -> List[models.Flight]:
    query = db.query(models.Flight)
    if origin:
        query = query.filter(models.Flight.origin.ilike(f"%{origin}%"))
    if destination:
        query = query.filter(models.Flight.destination.ilike(f"%{destination}%"))
    return query.order_by(models.Flight.id).offset(skip).limit(limit).all()


def create_flight(db: Session, flight_in: schemas.FlightCreate, agent_id: int) -> models.Flight:
    db_obj = models.Flight(**flight_in.model_dump(), agent_id=agent_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update_entity(db: Session, db_obj, changes: dict):
    """Apply a partial update to a catalog row and commit."""
    for field, value in changes.items():
        setattr(db_obj, field, value)
    db.commit()
    db.refresh(db_obj)
    return db_obj
