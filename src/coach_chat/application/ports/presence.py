"""Topic-based pub/sub used for ephemeral presence events."""
from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol

OnPresenceEvent = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class PresenceSubscription(Protocol):
    async def unsubscribe(self) -> None: ...


class PresenceTransport(Protocol):
    """Publish/subscribe on named channels. Both raise TransportError on failure."""

    async def subscribe(
        self, channel: str, callback: OnPresenceEvent,
    ) -> PresenceSubscription: ...

    async def publish(
        self, channel: str, event_type: str, data: dict[str, Any],
    ) -> None: ...
