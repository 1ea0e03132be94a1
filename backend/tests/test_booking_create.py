from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from travel_app.main import app
from travel_app import models, schemas
from travel_app.models import BookingStatus, BookingType, PaymentStatus, SeatClass, UserRole
from travel_app.models.base import BaseModel, utcnow
from travel_app.services import booking_service
from travel_app.utils.errors import InvalidStateError, NotFoundError

from factories import (
    auth_headers,
    create_flight,
    create_hotel,
    create_package,
    create_user,
)


def _records(db, quota=10):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    package = create_package(db, agent, price="1000000", quota=quota)
    return agent, customer, package


def test_package_booking_takes_price_and_one_seat(db):
    agent, customer, package = _records(db, quota=3)
    travel_date = utcnow() + timedelta(days=14)

    booking = booking_service.create_booking(
        db,
        schemas.PackageBookingCreate(type="package", package_id=package.id, travel_date=travel_date),
        customer,
    )

    assert booking.type == BookingType.PACKAGE
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.UNPAID
    assert Decimal(booking.total_price) == Decimal("1000000")
    db.refresh(package)
    assert package.quota == 2


def test_package_booking_rejected_when_quota_exhausted(db):
    agent, customer, package = _records(db, quota=0)
    booking_in = schemas.PackageBookingCreate(
        type="package", package_id=package.id, travel_date=utcnow() + timedelta(days=3)
    )

    with pytest.raises(InvalidStateError):
        booking_service.create_booking(db, booking_in, customer)

    assert db.query(models.Booking).count() == 0
    db.refresh(package)
    assert package.quota == 0


def test_unknown_package_is_not_found(db):
    customer = create_user(db, "customer@test.com")
    booking_in = schemas.PackageBookingCreate(
        type="package", package_id=999, travel_date=utcnow() + timedelta(days=3)
    )
    with pytest.raises(NotFoundError):
        booking_service.create_booking(db, booking_in, customer)


def test_hotel_booking_sums_nights_and_uses_earliest_check_in(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    hotel_a = create_hotel(db, agent, price_per_night="500000")
    hotel_b = create_hotel(db, agent, price_per_night="250000", name="Seminyak Inn")
    first = utcnow().replace(microsecond=0) + timedelta(days=10)

    booking = booking_service.create_booking(
        db,
        schemas.HotelBookingCreate(
            type="hotel",
            hotels=[
                schemas.HotelStayIn(
                    hotel_id=hotel_b.id,
                    check_in_date=first + timedelta(days=2),
                    check_out_date=first + timedelta(days=3),
                    nights=1,
                ),
                schemas.HotelStayIn(
                    hotel_id=hotel_a.id,
                    check_in_date=first,
                    check_out_date=first + timedelta(days=2),
                    nights=2,
                ),
            ],
        ),
        customer,
    )

    assert booking.type == BookingType.HOTEL
    assert Decimal(booking.total_price) == Decimal("1250000")
    assert booking.travel_date == first
    assert len(booking.hotel_items) == 2
    assert sum(Decimal(i.total_price) for i in booking.hotel_items) == Decimal(booking.total_price)


def test_flight_booking_charges_flat_fare_regardless_of_seat_class(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    outbound = create_flight(db, agent, price="750000")
    inbound = create_flight(db, agent, price="800000", number="GA-405")

    booking = booking_service.create_booking(
        db,
        schemas.FlightBookingCreate(
            type="flight",
            travel_date=utcnow() + timedelta(days=5),
            flights=[
                schemas.FlightSegmentIn(flight_id=outbound.id, passenger_name="Ayu", seat_class=SeatClass.FIRST),
                schemas.FlightSegmentIn(flight_id=inbound.id, passenger_name="Ayu", seat_class=SeatClass.ECONOMY),
            ],
        ),
        customer,
    )

    assert Decimal(booking.total_price) == Decimal("1550000")
    assert {i.seat_class for i in booking.flight_items} == {SeatClass.FIRST, SeatClass.ECONOMY}


def test_custom_booking_combines_hotels_and_flights(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    hotel = create_hotel(db, agent, price_per_night="300000")
    flight = create_flight(db, agent, price="900000")
    check_in = utcnow().replace(microsecond=0) + timedelta(days=20)

    booking = booking_service.create_booking(
        db,
        schemas.CustomBookingCreate(
            type="custom",
            hotels=[
                schemas.HotelStayIn(
                    hotel_id=hotel.id,
                    check_in_date=check_in,
                    check_out_date=check_in + timedelta(days=3),
                    nights=3,
                )
            ],
            flights=[
                schemas.FlightSegmentIn(flight_id=flight.id, passenger_name="Budi", seat_class=SeatClass.BUSINESS)
            ],
        ),
        customer,
    )

    assert booking.type == BookingType.CUSTOM
    assert Decimal(booking.total_price) == Decimal("1800000")
    assert booking.travel_date == check_in


def test_custom_booking_requires_a_line_item():
    with pytest.raises(ValidationError):
        schemas.CustomBookingCreate(type="custom", travel_date=utcnow() + timedelta(days=1))


def test_missing_flight_rolls_back_whole_booking(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    hotel = create_hotel(db, agent)
    check_in = utcnow() + timedelta(days=4)

    with pytest.raises(NotFoundError):
        booking_service.create_booking(
            db,
            schemas.CustomBookingCreate(
                type="custom",
                hotels=[
                    schemas.HotelStayIn(
                        hotel_id=hotel.id,
                        check_in_date=check_in,
                        check_out_date=check_in + timedelta(days=1),
                        nights=1,
                    )
                ],
                flights=[
                    schemas.FlightSegmentIn(flight_id=4242, passenger_name="Budi", seat_class=SeatClass.ECONOMY)
                ],
            ),
            customer,
        )

    assert db.query(models.Booking).count() == 0
    assert db.query(models.BookingHotel).count() == 0


def test_stale_quota_read_cannot_oversell(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False}
    )
    BaseModel.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    setup = Session()
    agent = create_user(setup, "agent@test.com", UserRole.AGENT)
    first = create_user(setup, "first@test.com")
    second = create_user(setup, "second@test.com")
    package_id = create_package(setup, agent, quota=1).id
    first_id, second_id = first.id, second.id
    setup.close()

    db_a = Session()
    db_b = Session()
    # Session A sees one seat left before B books it
    assert db_a.get(models.TravelPackage, package_id).quota == 1
    booking_in = schemas.PackageBookingCreate(
        type="package", package_id=package_id, travel_date=utcnow() + timedelta(days=7)
    )

    booking_service.create_booking(db_b, booking_in, db_b.get(models.User, first_id))
    with pytest.raises(InvalidStateError):
        booking_service.create_booking(db_a, booking_in, db_a.get(models.User, second_id))

    check = Session()
    assert check.get(models.TravelPackage, package_id).quota == 0
    assert check.query(models.Booking).count() == 1
    for s in (db_a, db_b, check):
        s.close()
    engine.dispose()


def test_create_booking_endpoint_persists_notification(Session, patch_notifications_broadcast):
    db = Session()
    agent, customer, package = _records(db)
    headers = auth_headers(customer)
    db.close()

    client = TestClient(app)
    res = client.post(
        "/api/v1/bookings/",
        json={
            "type": "package",
            "package_id": package.id,
            "travel_date": (utcnow() + timedelta(days=9)).isoformat(),
        },
        headers=headers,
    )

    assert res.status_code == 201, res.text
    body = res.json()
    assert body["type"] == "package"
    assert body["status"] == "pending"
    assert Decimal(str(body["total_price"])) == Decimal("1000000")
    assert body["package"]["title"] == "Bali Escape"

    db = Session()
    notif = db.query(models.Notification).one()
    assert notif.user_id == customer.id
    assert notif.event == "booking_created"
    assert f"#{body['id']}" in notif.message
    db.close()
    patch_notifications_broadcast.assert_awaited()


def test_create_booking_requires_token(Session):
    client = TestClient(app)
    res = client.post("/api/v1/bookings/", json={"type": "package", "package_id": 1})
    assert res.status_code == 401
