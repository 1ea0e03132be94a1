import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from travel_app.main import app
from travel_app.api import api_ws
from travel_app.models.notification import NotificationEvent
from travel_app.utils.notifications import notify

from factories import create_user
from travel_app.api.auth import create_access_token


def test_connection_without_token_is_refused(Session):
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/ws/notifications"):
            pass
    assert excinfo.value.code == api_ws.WS_4401_UNAUTHORIZED


def test_connection_with_unknown_user_is_refused(Session):
    client = TestClient(app)
    token = create_access_token({"sub": "ghost@test.com"})
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"/api/v1/ws/notifications?token={token}"):
            pass
    assert excinfo.value.code == api_ws.WS_4401_UNAUTHORIZED


def test_connect_sends_unread_count_and_answers_ping(Session):
    db = Session()
    user = create_user(db, "customer@test.com")
    notify(db, user.id, NotificationEvent.BOOKING_CREATED, booking_id=1)
    notify(db, user.id, NotificationEvent.BOOKING_CONFIRMED, booking_id=1)
    token = create_access_token({"sub": user.email})
    db.close()

    client = TestClient(app)
    with client.websocket_connect(f"/api/v1/ws/notifications?token={token}") as ws:
        first = ws.receive_json()
        assert first == {"v": 1, "type": "unread_count", "payload": {"count": 2}}
        assert api_ws.notifications_manager.is_online(user.id)

        ws.send_json({"v": 1, "type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_bearer_header_is_accepted(Session):
    db = Session()
    user = create_user(db, "customer@test.com")
    token = create_access_token({"sub": user.email})
    db.close()

    client = TestClient(app)
    with client.websocket_connect(
        "/api/v1/ws/notifications", headers={"Authorization": f"Bearer {token}"}
    ) as ws:
        assert ws.receive_json()["payload"] == {"count": 0}


def test_envelope_parsing_tolerates_junk():
    env = api_ws.Envelope.from_raw({"type": "ping", "payload": "nope"})
    assert env.type == "ping"
    assert env.payload is None
    assert api_ws.Envelope.from_raw(["not", "a", "dict"]).to_dict() == {"v": 1, "type": "message"}
