from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from ..core.config import settings
from ..services.redis_client import redis as _redis_client  # async redis (or null)

logger = logging.getLogger(__name__)

TOPIC_PREFIX = "ws-topic:"


def bus_enabled() -> bool:
    return settings.WS_BUS_ENABLED and hasattr(_redis_client, "publish")


async def publish_topic(topic: str, envelope: dict[str, Any] | str) -> None:
    """Publish an envelope to ws-topic:<topic> (JSON string or dict).

    Safe to call even when the bus is disabled; becomes a no-op.
    """
    if not bus_enabled():
        return
    if isinstance(envelope, str):
        data = envelope
    else:
        env = dict(envelope)
        env.setdefault("v", 1)
        env.setdefault("topic", topic)
        data = json.dumps(env, separators=(",", ":"), default=str)
    try:
        await _redis_client.publish(f"{TOPIC_PREFIX}{topic}", data)
    except Exception:
        # Local sessions were already served; remote instances miss this one
        logger.warning("Realtime bus publish failed for topic %s", topic, exc_info=True)


_consumer_started = False


def _decode(data: Any) -> dict[str, Any]:
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            return {"payload": {"data": data}}
        return parsed if isinstance(parsed, dict) else {"payload": {"data": parsed}}
    return {}


async def start_pattern_consumer(
    pattern: str,
    handler: Callable[[str, dict[str, Any]], Awaitable[None]],
) -> None:
    """Start a background task that PSUBSCRIBEs to a pattern and dispatches JSON payloads.

    Handler receives (topic_without_prefix, envelope_dict).
    """
    global _consumer_started
    if not bus_enabled() or _consumer_started:
        return
    _consumer_started = True

    try:
        pubsub = _redis_client.pubsub()
        await pubsub.psubscribe(pattern)
    except Exception:
        # Leave disabled; the next startup retries
        _consumer_started = False
        logger.warning("Realtime bus subscribe failed for %s", pattern, exc_info=True)
        return

    async def _loop() -> None:
        try:
            async for msg in pubsub.listen():
                if not isinstance(msg, dict) or msg.get("type") != "pmessage":
                    continue
                topic = str(msg.get("channel")).replace(TOPIC_PREFIX, "", 1)
                try:
                    await handler(topic, _decode(msg.get("data")))
                except Exception:
                    # Keep the stream alive
                    logger.exception("Realtime bus handler failed for topic %s", topic)
        finally:
            await pubsub.close()

    asyncio.create_task(_loop())


__all__ = [
    "bus_enabled",
    "publish_topic",
    "start_pattern_consumer",
]
