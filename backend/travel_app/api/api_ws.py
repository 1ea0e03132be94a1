# travel_app/api/api_ws.py
# WebSocket transport for /ws/notifications: typed envelopes, presence,
# ping/pong, and the notifications_manager used by the service layer.

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt

from ..crud import crud_notification
from ..database import get_db_session
from ..realtime import bus
from .auth import ALGORITHM, SECRET_KEY, get_user_by_email

logger = logging.getLogger(__name__)
router = APIRouter()

PING_INTERVAL_DEFAULT = 30.0
PONG_TIMEOUT = 45.0
SEND_TIMEOUT = 10.0
WS_4401_UNAUTHORIZED = 4401

INSTANCE_ID = os.getenv("INSTANCE_ID", "inst-" + os.urandom(4).hex())


@dataclass
class Envelope:
    v: int = 1
    type: str = ""        # default to "message" on send
    topic: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    @staticmethod
    def from_raw(raw: Any) -> "Envelope":
        if isinstance(raw, dict):
            return Envelope(
                v=int(raw.get("v", 1)),
                type=str(raw.get("type") or ""),
                topic=(str(raw["topic"]) if raw.get("topic") is not None else None),
                payload=(raw.get("payload") if isinstance(raw.get("payload"), dict) else None),
            )
        return Envelope()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"v": self.v, "type": (self.type or "message")}
        if self.topic is not None: data["topic"] = self.topic
        if self.payload is not None: data["payload"] = self.payload
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)


class NotificationSocket:
    """Thin wrapper that speaks JSON envelopes over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.ws = websocket

    async def send_envelope(self, env: Envelope) -> None:
        try:
            await self.ws.send_text(env.to_json())
        except WebSocketDisconnect:
            raise
        except RuntimeError:
            raise WebSocketDisconnect(code=1006)

    async def recv_envelope(self) -> Envelope:
        text = await self.ws.receive_text()
        try:
            obj = json.loads(text)
        except json.JSONDecodeError:
            return Envelope()
        return Envelope.from_raw(obj)


class Presence:
    _counts: Dict[int, int] = {}

    @classmethod
    def mark_online(cls, uid: int) -> None:
        cls._counts[uid] = cls._counts.get(uid, 0) + 1

    @classmethod
    def mark_offline(cls, uid: int) -> None:
        cnt = cls._counts.get(uid, 0) - 1
        if cnt <= 0:
            cls._counts.pop(uid, None)
        else:
            cls._counts[uid] = cnt

    @classmethod
    def is_online(cls, uid: int) -> bool:
        return cls._counts.get(uid, 0) > 0

    @classmethod
    def online_count(cls) -> int:
        return sum(1 for c in cls._counts.values() if c > 0)

    @classmethod
    def reset(cls) -> None:
        cls._counts.clear()


# -------- per-user fan-out --------

class NotifyFanout:
    def __init__(self) -> None:
        self.user_sockets: Dict[int, Set[NotificationSocket]] = {}

    async def connect(self, user_id: int, conn: NotificationSocket) -> None:
        self.user_sockets.setdefault(int(user_id), set()).add(conn)

    def disconnect(self, user_id: int, conn: NotificationSocket) -> None:
        conns = self.user_sockets.get(int(user_id))
        if not conns: return
        conns.discard(conn)
        if not conns:
            del self.user_sockets[int(user_id)]

    def session_count(self) -> int:
        return sum(len(conns) for conns in self.user_sockets.values())

    async def push(self, user_id: int, env: Envelope, publish: bool = True) -> int:
        """Send ``env`` to every open session of ``user_id``; returns deliveries."""
        env.topic = env.topic or f"notifications:{int(user_id)}"
        delivered = 0
        for conn in list(self.user_sockets.get(int(user_id), set())):
            try:
                await asyncio.wait_for(conn.send_envelope(env), timeout=SEND_TIMEOUT)
                delivered += 1
            except (WebSocketDisconnect, asyncio.TimeoutError):
                self.disconnect(int(user_id), conn)
        if publish and bus.bus_enabled():
            data = env.to_dict()
            data["origin"] = INSTANCE_ID
            await bus.publish_topic(env.topic, data)
        return delivered

    async def push_all(self, env: Envelope, publish: bool = True) -> int:
        delivered = 0
        for uid in list(self.user_sockets):
            delivered += await self.push(uid, Envelope(v=env.v, type=env.type, payload=env.payload), publish=False)
        if publish and bus.bus_enabled():
            data = env.to_dict()
            data["origin"] = INSTANCE_ID
            await bus.publish_topic("notifications:all", data)
        return delivered


notify = NotifyFanout()


def _user_from_token(token: str):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    email = payload.get("sub")
    if not email:
        return None
    with get_db_session() as db:
        user = get_user_by_email(db, email)
        if user is None or not user.is_active:
            return None
        return user.id, crud_notification.get_unread_count(db, user.id)


def _extract_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    auth = websocket.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


@router.websocket("/ws/notifications")
async def notifications_ws(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    heartbeat: float = Query(PING_INTERVAL_DEFAULT),
):
    session_start = time.time()
    raw_token = _extract_token(websocket, token)
    resolved = await run_in_threadpool(_user_from_token, raw_token) if raw_token else None
    if not resolved:
        logger.warning("ws.notifications.auth_failed has_token=%s", bool(raw_token))
        await websocket.close(code=WS_4401_UNAUTHORIZED)
        return
    user_id, unread = resolved

    await websocket.accept()
    conn = NotificationSocket(websocket)
    await notify.connect(user_id, conn)
    Presence.mark_online(user_id)
    logger.info("ws.notifications.connect user_id=%s", user_id)

    try:
        await conn.send_envelope(Envelope(type="unread_count", payload={"count": unread}))

        last_pong = time.time()

        async def ping_loop() -> None:
            while True:
                await asyncio.sleep(max(heartbeat, PING_INTERVAL_DEFAULT))
                if (time.time() - last_pong) > PONG_TIMEOUT + heartbeat:
                    await websocket.close(code=status.WS_1001_GOING_AWAY)
                    break
                try:
                    await conn.send_envelope(Envelope(type="ping"))
                except WebSocketDisconnect:
                    break

        pinger = asyncio.create_task(ping_loop())
        try:
            while True:
                env = await conn.recv_envelope()
                # Any client frame counts as liveness
                last_pong = time.time()
                if env.v != 1:
                    continue
                if env.type == "ping":
                    await conn.send_envelope(Envelope(type="pong"))
                    continue
                # notifications are server-push only
        except WebSocketDisconnect as exc:
            logger.info(
                "ws.notifications.disconnect user_id=%s code=%s", user_id, getattr(exc, "code", None)
            )
        finally:
            pinger.cancel()
    finally:
        Presence.mark_offline(user_id)
        notify.disconnect(user_id, conn)
        logger.info(
            "ws.notifications.closed user_id=%s duration_ms=%d",
            user_id,
            int((time.time() - session_start) * 1000),
        )


# -------- service-layer entry point --------

class NotificationsManager:
    """Route events to a user's open sessions, local or on other instances."""

    async def broadcast(self, user_id: int, message: Any) -> int:
        if isinstance(message, Envelope):
            env = message
        elif isinstance(message, dict):
            env = Envelope(type="notification", payload=message)
        else:
            env = Envelope(type="notification", payload={"data": message})
        return await notify.push(int(user_id), env)

    async def broadcast_all(self, message: Dict[str, Any]) -> int:
        return await notify.push_all(Envelope(type="broadcast", payload=message))

    def is_online(self, user_id: int) -> bool:
        return Presence.is_online(int(user_id))

    def online_count(self) -> int:
        return Presence.online_count()

    def session_count(self) -> int:
        return notify.session_count()


notifications_manager = NotificationsManager()


# -------- optional Redis bus --------

async def _bus_dispatch(topic: str, data: dict) -> None:
    if data.get("origin") == INSTANCE_ID:
        return
    env = Envelope.from_raw(data)
    if topic == "notifications:all":
        await notify.push_all(env, publish=False)
        return
    if topic.startswith("notifications:"):
        try:
            user_id = int(topic.split(":", 1)[1])
        except ValueError:
            logger.warning("Ignoring bus message for malformed topic %s", topic)
            return
        await notify.push(user_id, env, publish=False)


async def ensure_ws_bus_started() -> None:
    await bus.start_pattern_consumer(f"{bus.TOPIC_PREFIX}notifications:*", _bus_dispatch)
