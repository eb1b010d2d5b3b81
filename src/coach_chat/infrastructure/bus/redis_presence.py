"""Presence transport over Redis Pub/Sub.

One shared PubSub connection per process; each ``typing:<low>-<high>``
channel is subscribed while at least one local session listens on it.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from coach_chat.application.exceptions import TransportError
from coach_chat.application.ports.presence import OnPresenceEvent
from coach_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisPresenceSubscription:
    def __init__(
        self,
        transport: RedisPresenceTransport,
        channel: str,
        callback: OnPresenceEvent,
    ) -> None:
        self._transport = transport
        self.channel = channel
        self.callback = callback
        self._active = True

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        await self._transport._remove(self)


class RedisPresenceTransport:
    """Implements application.ports.presence.PresenceTransport."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis
        self._pubsub: aioredis.client.PubSub | None = None
        self._listeners: dict[str, set[RedisPresenceSubscription]] = defaultdict(set)
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    async def subscribe(
        self, channel: str, callback: OnPresenceEvent,
    ) -> RedisPresenceSubscription:
        sub = RedisPresenceSubscription(self, channel, callback)
        async with self._lock:
            try:
                if self._pubsub is None:
                    self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
                if not self._listeners[channel]:
                    await self._pubsub.subscribe(channel)
            except RedisError as exc:
                raise TransportError(f"Subscribe to {channel} failed") from exc
            self._listeners[channel].add(sub)
            if self._task is None or self._task.done():
                self._task = asyncio.create_task(self._listen(), name="redis-presence")
        return sub

    async def publish(self, channel: str, event_type: str, data: dict[str, Any]) -> None:
        try:
            await self._redis.publish(channel, serialize_event(event_type, data))
        except RedisError as exc:
            raise TransportError(f"Publish to {channel} failed") from exc

    async def _remove(self, sub: RedisPresenceSubscription) -> None:
        async with self._lock:
            listeners = self._listeners.get(sub.channel)
            if not listeners:
                return
            listeners.discard(sub)
            if listeners:
                return
            del self._listeners[sub.channel]
            if self._pubsub is None:
                return
            try:
                await self._pubsub.unsubscribe(sub.channel)
            except RedisError as exc:
                raise TransportError(f"Unsubscribe from {sub.channel} failed") from exc

    async def _listen(self) -> None:
        assert self._pubsub is not None
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                channel = message["channel"]
                if isinstance(channel, bytes):
                    channel = channel.decode()
                try:
                    event_type, data = deserialize_event(message["data"])
                except ValueError:
                    logger.warning("Dropping malformed presence event on %s", channel)
                    continue
                for sub in list(self._listeners.get(channel, ())):
                    try:
                        await sub.callback(event_type, data)
                    except Exception:
                        logger.exception("Presence callback failed on %s", channel)
        except RedisError:
            logger.warning("Presence listener lost its connection", exc_info=True)

    async def aclose(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        self._listeners.clear()
