import asyncio
from unittest.mock import AsyncMock

from travel_app.api import api_ws
from travel_app.realtime import bus


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_envelope(self, env):
        self.sent.append(env.to_dict())


def test_decode_handles_bytes_and_junk():
    assert bus._decode(b'{"type":"notification"}') == {"type": "notification"}
    assert bus._decode("not json") == {"payload": {"data": "not json"}}
    assert bus._decode(None) == {}


def test_publish_is_noop_when_bus_disabled(monkeypatch):
    publish = AsyncMock()
    monkeypatch.setattr(bus, "bus_enabled", lambda: False)
    monkeypatch.setattr(bus._redis_client, "publish", publish, raising=False)

    asyncio.run(bus.publish_topic("notifications:1", {"type": "notification"}))

    publish.assert_not_called()


def test_push_reaches_every_session_of_the_user(monkeypatch):
    monkeypatch.setattr(bus, "bus_enabled", lambda: False)
    fanout = api_ws.NotifyFanout()
    first, second, stranger = RecordingSocket(), RecordingSocket(), RecordingSocket()

    async def run():
        await fanout.connect(1, first)
        await fanout.connect(1, second)
        await fanout.connect(2, stranger)
        return await fanout.push(1, api_ws.Envelope(type="notification", payload={"id": 5}))

    assert asyncio.run(run()) == 2
    assert first.sent == [
        {"v": 1, "type": "notification", "topic": "notifications:1", "payload": {"id": 5}}
    ]
    assert stranger.sent == []
    assert fanout.session_count() == 3

    fanout.disconnect(1, first)
    fanout.disconnect(1, second)
    assert fanout.session_count() == 1


def test_remote_dispatch_skips_own_instance(monkeypatch):
    push = AsyncMock(return_value=1)
    monkeypatch.setattr(api_ws.notify, "push", push)

    asyncio.run(api_ws._bus_dispatch("notifications:7", {"origin": api_ws.INSTANCE_ID, "type": "x"}))
    push.assert_not_called()

    asyncio.run(
        api_ws._bus_dispatch("notifications:7", {"origin": "inst-other", "type": "notification", "payload": {}})
    )
    assert push.call_args.args[0] == 7
    assert push.call_args.kwargs == {"publish": False}
