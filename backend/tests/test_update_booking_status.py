from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from travel_app.main import app
from travel_app import models
from travel_app.models import BookingStatus, PaymentStatus, RescheduleStatus, UserRole
from travel_app.models.base import utcnow
from travel_app.services import booking_service, reschedule_service
from travel_app.utils.errors import ForbiddenError, InvalidStateError, NotFoundError

from factories import (
    auth_headers,
    create_booking,
    create_hotel,
    create_package,
    create_user,
)


def _records(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    other_agent = create_user(db, "other@test.com", UserRole.AGENT)
    admin = create_user(db, "admin@test.com", UserRole.ADMIN)
    customer = create_user(db, "customer@test.com")
    package = create_package(db, agent, quota=5)
    return agent, other_agent, admin, customer, package


def _hotel_booking(db, customer, hotel):
    booking = models.Booking(
        user_id=customer.id,
        type=models.BookingType.HOTEL,
        travel_date=utcnow() + timedelta(days=10),
        total_price=hotel.price_per_night,
        hotel_items=[
            models.BookingHotel(
                hotel_id=hotel.id,
                check_in_date=utcnow() + timedelta(days=10),
                check_out_date=utcnow() + timedelta(days=11),
                nights=1,
                total_price=hotel.price_per_night,
            )
        ],
    )
    db.add(booking)
    db.commit()
    return booking


def test_agent_confirms_booking_for_own_package(db):
    agent, _, _, customer, package = _records(db)
    booking = create_booking(db, customer, package)

    updated = booking_service.update_booking_status(db, booking.id, BookingStatus.CONFIRMED, agent)

    assert updated.status == BookingStatus.CONFIRMED
    notif = db.query(models.Notification).one()
    assert notif.user_id == customer.id
    assert notif.event == "booking_confirmed"


def test_agent_cannot_touch_hotel_booking_of_another_agent(db):
    agent, other_agent, _, customer, _ = _records(db)
    hotel = create_hotel(db, agent)
    booking = _hotel_booking(db, customer, hotel)

    with pytest.raises(ForbiddenError):
        booking_service.update_booking_status(db, booking.id, BookingStatus.CONFIRMED, other_agent)

    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING


def test_customer_may_only_reject_own_booking(db):
    _, _, _, customer, package = _records(db)
    stranger = create_user(db, "stranger@test.com")
    booking = create_booking(db, customer, package)

    with pytest.raises(ForbiddenError):
        booking_service.update_booking_status(db, booking.id, BookingStatus.CONFIRMED, customer)
    with pytest.raises(NotFoundError):
        booking_service.update_booking_status(db, booking.id, BookingStatus.REJECTED, stranger)

    updated = booking_service.update_booking_status(db, booking.id, BookingStatus.REJECTED, customer)
    assert updated.status == BookingStatus.REJECTED
    assert db.query(models.Notification).one().event == "booking_rejected"


@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.REFUNDED, BookingStatus.REJECTED])
def test_terminal_bookings_are_frozen(db, terminal):
    _, _, admin, customer, package = _records(db)
    booking = create_booking(db, customer, package, status=terminal)

    with pytest.raises(InvalidStateError):
        booking_service.update_booking_status(db, booking.id, BookingStatus.CONFIRMED, admin)


def test_cancel_and_refund_targets_need_their_own_workflow(db):
    _, _, admin, customer, package = _records(db)
    booking = create_booking(db, customer, package)

    for target in (BookingStatus.CANCELLED, BookingStatus.REFUNDED):
        with pytest.raises(InvalidStateError):
            booking_service.update_booking_status(db, booking.id, target, admin)


def test_unchanged_status_is_rejected(db):
    _, _, admin, customer, package = _records(db)
    booking = create_booking(db, customer, package, status=BookingStatus.CONFIRMED)

    with pytest.raises(InvalidStateError):
        booking_service.update_booking_status(db, booking.id, BookingStatus.CONFIRMED, admin)


def test_rejecting_paid_package_booking_returns_the_seat(db):
    agent, _, _, customer, package = _records(db)
    booking = create_booking(
        db,
        customer,
        package,
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
    )

    booking_service.update_booking_status(db, booking.id, BookingStatus.REJECTED, agent)

    db.refresh(package)
    assert package.quota == 6


def test_status_endpoint_error_shape(Session):
    db = Session()
    _, other_agent, _, customer, package = _records(db)
    booking = create_booking(db, customer, package)
    headers = auth_headers(other_agent)
    db.close()

    client = TestClient(app)
    res = client.put(
        f"/api/v1/bookings/{booking.id}/status",
        json={"status": "confirmed"},
        headers=headers,
    )

    assert res.status_code == 403
    detail = res.json()["detail"]
    assert detail["code"] == "forbidden"
    assert "message" in detail and "field_errors" in detail


def test_listing_is_scoped_by_role(Session):
    db = Session()
    agent, other_agent, admin, customer, package = _records(db)
    someone = create_user(db, "someone@test.com")
    other_package = create_package(db, other_agent, title="Lombok Trip")
    create_booking(db, customer, package)
    create_booking(db, customer, other_package)
    create_booking(db, someone, other_package, status=BookingStatus.CONFIRMED)
    headers = {u.email: auth_headers(u) for u in (agent, admin, customer)}
    package_id = package.id
    db.close()

    client = TestClient(app)

    mine = client.get("/api/v1/bookings/", headers=headers["customer@test.com"]).json()
    assert mine["meta"]["total"] == 2

    as_agent = client.get("/api/v1/bookings/", headers=headers["agent@test.com"]).json()
    assert as_agent["meta"]["total"] == 1
    assert as_agent["data"][0]["package_id"] == package_id

    everything = client.get(
        "/api/v1/bookings/?status=confirmed&limit=1", headers=headers["admin@test.com"]
    ).json()
    assert everything["meta"] == {"total": 1, "page": 1, "limit": 1, "total_pages": 1}


def test_customer_cannot_read_someone_elses_booking(Session):
    db = Session()
    _, _, _, customer, package = _records(db)
    stranger = create_user(db, "stranger@test.com")
    booking = create_booking(db, customer, package)
    headers = auth_headers(stranger)
    db.close()

    client = TestClient(app)
    res = client.get(f"/api/v1/bookings/{booking.id}", headers=headers)
    assert res.status_code == 404


def test_rejecting_closes_pending_reschedule(db):
    agent, _, _, customer, package = _records(db)
    booking = create_booking(db, customer, package, status=BookingStatus.CONFIRMED)
    reschedule = reschedule_service.request_reschedule(
        db, booking.id, utcnow() + timedelta(days=60), customer
    )

    booking_service.update_booking_status(db, booking.id, BookingStatus.REJECTED, agent)

    db.refresh(reschedule)
    assert reschedule.status == RescheduleStatus.REJECTED
    assert reschedule.resolved_at is not None
    assert reschedule.resolved_by is None
