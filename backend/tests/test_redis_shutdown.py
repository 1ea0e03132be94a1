import asyncio

from travel_app.services import redis_client


class DummyRedis:
    def __init__(self):
        self.closed = False

    async def aclose(self):
        self.closed = True


def test_close_redis_client(monkeypatch):
    dummy = DummyRedis()
    monkeypatch.setattr(redis_client, "redis", dummy)
    asyncio.run(redis_client.close_redis_client())
    assert dummy.closed


def test_null_client_closes_cleanly():
    asyncio.run(redis_client._AsyncNullRedis().close())
