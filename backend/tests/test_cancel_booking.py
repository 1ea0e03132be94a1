import logging
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from travel_app.main import app
from travel_app import models
from travel_app.models import BookingStatus, PaymentStatus, RefundStatus, RescheduleStatus, UserRole
from travel_app.models.base import utcnow
from travel_app.services import refund_service, reschedule_service
from travel_app.utils.errors import ConflictError, InvalidStateError, NotFoundError

from factories import auth_headers, create_booking, create_package, create_user


def _records(db, quota=4):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    package = create_package(db, agent, quota=quota)
    return customer, package


def test_cancel_unpaid_booking_returns_seat_without_refund(db):
    customer, package = _records(db)
    booking = create_booking(db, customer, package)

    cancelled = refund_service.cancel_booking(db, booking.id, "No longer needed", True, customer)

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert cancelled.cancellation_reason == "No longer needed"
    assert db.query(models.Refund).count() == 0
    db.refresh(package)
    assert package.quota == 5


def test_cancel_paid_booking_with_refund(db):
    customer, package = _records(db)
    booking = create_booking(
        db, customer, package, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID
    )

    refund_service.cancel_booking(db, booking.id, "Plans changed", True, customer)

    refund = db.query(models.Refund).one()
    assert refund.booking_id == booking.id
    assert refund.reason == "Plans changed"
    events = [n.event for n in db.query(models.Notification).order_by(models.Notification.id)]
    assert events == ["booking_cancelled", "refund_requested"]
    db.refresh(package)
    assert package.quota == 5


def test_ineligible_refund_does_not_block_cancellation(db, caplog):
    customer, package = _records(db)
    booking = create_booking(
        db,
        customer,
        package,
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
        travel_date=utcnow() + timedelta(hours=6),
    )

    caplog.set_level(logging.WARNING, logger="travel_app.services.refund_service")
    cancelled = refund_service.cancel_booking(db, booking.id, "Too late", True, customer)

    assert cancelled.status == BookingStatus.CANCELLED
    assert db.query(models.Refund).count() == 0
    assert any("cancelled without refund" in r.getMessage() for r in caplog.records)
    db.refresh(package)
    assert package.quota == 5


def test_cancel_without_refund_flag_skips_refund(db):
    customer, package = _records(db)
    booking = create_booking(
        db, customer, package, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID
    )

    refund_service.cancel_booking(db, booking.id, "Keep the credit", False, customer)

    assert db.query(models.Refund).count() == 0


@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.REFUNDED, BookingStatus.REJECTED])
def test_terminal_bookings_cannot_be_cancelled(db, terminal):
    customer, package = _records(db)
    booking = create_booking(db, customer, package, status=terminal)

    with pytest.raises(InvalidStateError):
        refund_service.cancel_booking(db, booking.id, "again", False, customer)
    db.refresh(package)
    assert package.quota == 4


def test_only_owner_cancels(db):
    customer, package = _records(db)
    stranger = create_user(db, "stranger@test.com")
    booking = create_booking(db, customer, package)

    with pytest.raises(NotFoundError):
        refund_service.cancel_booking(db, booking.id, "not mine", False, stranger)


def test_cancel_endpoint(Session):
    db = Session()
    customer, package = _records(db)
    booking = create_booking(db, customer, package)
    headers = auth_headers(customer)
    db.close()

    client = TestClient(app)
    res = client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Changed my mind"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "cancelled"

    res = client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Twice"},
        headers=headers,
    )
    assert res.status_code == 422


def test_duplicate_refund_insert_rolls_back_only_the_refund(db, caplog, monkeypatch):
    customer, package = _records(db)
    booking = create_booking(
        db, customer, package, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID
    )
    db.add(
        models.Refund(
            booking_id=booking.id,
            user_id=customer.id,
            amount=Decimal("500000"),
            original_amount=Decimal("1000000"),
            reason="earlier",
            status=RefundStatus.PENDING,
        )
    )
    db.commit()
    monkeypatch.setattr(refund_service.crud_refund, "get_refund_for_booking", lambda db, booking_id: None)

    caplog.set_level(logging.WARNING, logger="travel_app.services.refund_service")
    cancelled = refund_service.cancel_booking(db, booking.id, "Plans changed", True, customer)

    assert cancelled.status == BookingStatus.CANCELLED
    assert [r.reason for r in db.query(models.Refund)] == ["earlier"]
    assert any("cancelled without refund" in r.getMessage() for r in caplog.records)
    events = [n.event for n in db.query(models.Notification).order_by(models.Notification.id)]
    assert events == ["booking_cancelled"]
    db.refresh(package)
    assert package.quota == 5


def test_cancelling_closes_pending_reschedule(db):
    agent = create_user(db, "agent@test.com", UserRole.AGENT)
    customer = create_user(db, "customer@test.com")
    package = create_package(db, agent)
    booking = create_booking(db, customer, package, status=BookingStatus.CONFIRMED)
    reschedule = reschedule_service.request_reschedule(
        db, booking.id, utcnow() + timedelta(days=45), customer
    )

    refund_service.cancel_booking(db, booking.id, "Trip called off", False, customer)

    db.refresh(reschedule)
    assert reschedule.status == RescheduleStatus.REJECTED
    assert reschedule.resolved_at is not None
    assert reschedule.resolved_by is None
    with pytest.raises(ConflictError):
        reschedule_service.handle_reschedule_request(db, reschedule.id, True, agent)
