import asyncio
import logging
from decimal import Decimal
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from travel_app.main import app
from travel_app import models
from travel_app.crud import crud_notification
from travel_app.models import UserRole
from travel_app.models.notification import NotificationEvent, NotificationType
from travel_app.utils import notifications
from travel_app.utils.notifications import format_notification_message, notify

from factories import auth_headers, create_user


def test_format_notification_message_variants():
    assert (
        format_notification_message(NotificationEvent.BOOKING_CREATED, booking_id=7)
        == "Your booking #7 has been created successfully"
    )
    assert (
        format_notification_message(NotificationEvent.BOOKING_CANCELLED, booking_id=7, booking_type="hotel")
        == "Your Hotel booking #7 has been cancelled"
    )
    assert format_notification_message(
        NotificationEvent.REFUND_REQUESTED, booking_id=7, booking_type="package", amount=Decimal("500000")
    ).endswith("Refund amount: IDR 500,000")
    assert format_notification_message(
        NotificationEvent.REFUND_APPROVED, booking_id=7, amount=Decimal("99999.50")
    ).endswith("IDR 99,999.50")
    assert format_notification_message(NotificationEvent.BROADCAST, content="Maintenance") == "Maintenance"


def test_notify_persists_and_pushes(db, patch_notifications_broadcast):
    user = create_user(db, "customer@test.com")

    notif = notify(db, user.id, NotificationEvent.PAYMENT_SUCCESS, booking_id=3, amount=Decimal("10"))

    assert notif.type == NotificationType.PAYMENT
    assert notif.link == "/bookings/3"
    assert notif.data == {"booking_id": 3, "amount": 10.0}
    user_id, payload = patch_notifications_broadcast.call_args.args
    assert user_id == user.id
    assert payload["event"] == "payment_success"
    assert payload["id"] == notif.id


def test_notify_never_raises(db, monkeypatch, caplog):
    user = create_user(db, "customer@test.com")

    def boom(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(crud_notification, "create_notification", boom)
    caplog.set_level(logging.ERROR, logger="travel_app.utils.notifications")

    assert notify(db, user.id, NotificationEvent.BOOKING_CONFIRMED, booking_id=1) is None
    assert any("Failed to deliver booking_confirmed" in r.getMessage() for r in caplog.records)


def _seed(db, user, count=3):
    for i in range(count):
        notify(db, user.id, NotificationEvent.BOOKING_CREATED, booking_id=i + 1)


def test_notification_endpoints(Session):
    db = Session()
    user = create_user(db, "customer@test.com")
    other = create_user(db, "other@test.com")
    _seed(db, user)
    notify(db, user.id, NotificationEvent.REFUND_REJECTED, booking_id=9)
    notify(db, other.id, NotificationEvent.BOOKING_CREATED, booking_id=99)
    headers = auth_headers(user)
    other_headers = auth_headers(other)
    db.close()

    client = TestClient(app)

    listing = client.get("/api/v1/notifications?limit=2", headers=headers).json()
    assert listing["meta"]["total"] == 4
    assert len(listing["data"]) == 2
    assert listing["data"][0]["event"] == "refund_rejected"

    refunds = client.get("/api/v1/notifications?type=refund", headers=headers).json()
    assert [n["event"] for n in refunds["data"]] == ["refund_rejected"]

    assert client.get("/api/v1/notifications/unread-count", headers=headers).json() == {"count": 4}

    first_id = listing["data"][0]["id"]
    res = client.put(f"/api/v1/notifications/{first_id}/read", headers=headers)
    assert res.status_code == 200
    assert res.json()["is_read"] is True
    assert client.put(f"/api/v1/notifications/{first_id}/read", headers=other_headers).status_code == 404

    unread = client.get("/api/v1/notifications?is_read=false", headers=headers).json()
    assert unread["meta"]["total"] == 3

    assert client.put("/api/v1/notifications/read-all", headers=headers).json() == {"updated": 3}
    assert client.get("/api/v1/notifications/unread-count", headers=headers).json() == {"count": 0}
    assert client.get("/api/v1/notifications/unread-count", headers=other_headers).json() == {"count": 1}

    assert client.delete(f"/api/v1/notifications/{first_id}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/v1/notifications/{first_id}", headers=headers).status_code == 204
    assert client.get("/api/v1/notifications", headers=headers).json()["meta"]["total"] == 3


def test_admin_stats_and_broadcast(Session):
    db = Session()
    admin = create_user(db, "admin@test.com", UserRole.ADMIN)
    customer = create_user(db, "customer@test.com")
    admin_headers = auth_headers(admin)
    customer_headers = auth_headers(customer)
    db.close()

    client = TestClient(app)

    assert client.get("/api/v1/notifications/admin/stats", headers=customer_headers).status_code == 403
    stats = client.get("/api/v1/notifications/admin/stats", headers=admin_headers).json()
    assert stats == {"online_users": 0, "open_sessions": 0}

    res = client.post(
        "/api/v1/notifications/admin/broadcast",
        json={"message": "Scheduled maintenance tonight"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json() == {"delivered": 0}

    res = client.post(
        "/api/v1/notifications/admin/broadcast", json={"message": ""}, headers=admin_headers
    )
    assert res.status_code == 422

    db = Session()
    assert db.query(models.Notification).count() == 0
    db.close()


def test_failed_push_from_event_loop_is_logged(monkeypatch, caplog):
    monkeypatch.setattr(
        notifications.notifications_manager, "broadcast", AsyncMock(side_effect=RuntimeError("socket closed"))
    )
    caplog.set_level(logging.ERROR, logger="travel_app.utils.notifications")

    async def run():
        notifications._schedule_broadcast(4, {"event": "payment_success"})
        assert len(notifications._pending_pushes) == 1
        for _ in range(3):
            await asyncio.sleep(0)

    asyncio.run(run())

    assert notifications._pending_pushes == set()
    assert any(
        "Notification push failed: socket closed" in r.getMessage() for r in caplog.records
    )
