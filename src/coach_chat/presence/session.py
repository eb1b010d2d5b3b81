"""Typing presence for one open conversation.

A ``PresenceSession`` is owned by the conversation view that opened it: it
joins the pair's ``typing:`` channel on start and leaves it on close. Presence
is best-effort: transport failures are logged and never raised, and a lost
"stopped typing" corrects itself when the expiry timer fires.
"""
from __future__ import annotations

import asyncio
import logging
import time
from types import TracebackType
from typing import Any, Callable, Coroutine, Self

from coach_chat.application.exceptions import TransportError
from coach_chat.application.ports.presence import PresenceSubscription, PresenceTransport
from coach_chat.domain.value_objects.ids import typing_channel

logger = logging.getLogger(__name__)

TYPING_EVENT = "typing"

OnTypingChange = Callable[[bool], Coroutine[Any, Any, None]]


class PresenceSession:
    def __init__(
        self,
        transport: PresenceTransport,
        self_id: str,
        partner_id: str,
        *,
        debounce_seconds: float = 2.0,
        typing_timeout_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        on_change: OnTypingChange | None = None,
    ) -> None:
        self._transport = transport
        self.self_id = self_id
        self.partner_id = partner_id
        self.channel = typing_channel(self_id, partner_id)
        self._debounce = debounce_seconds
        self._typing_timeout = typing_timeout_seconds
        self._clock = clock
        self._on_change = on_change

        self._subscription: PresenceSubscription | None = None
        self._last_broadcast: float | None = None
        self._expiry: asyncio.Task[None] | None = None
        self._is_typing = False
        self._closed = False

    @property
    def is_typing(self) -> bool:
        """Whether the partner is currently typing."""
        return self._is_typing

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        if self._closed or self._subscription is not None:
            return
        try:
            self._subscription = await self._transport.subscribe(self.channel, self._on_event)
        except TransportError:
            logger.warning("Presence subscribe failed on %s", self.channel, exc_info=True)
            return
        logger.debug("Joined presence channel %s as %s", self.channel, self.self_id)

    async def broadcast_typing(self) -> bool:
        """Tell the partner we are typing. Returns True if an event was sent."""
        if self._closed:
            return False
        now = self._clock()
        previous = self._last_broadcast
        if previous is not None and now - previous < self._debounce:
            return False

        # Claim the window before awaiting so overlapping calls stay debounced.
        self._last_broadcast = now
        try:
            await self._transport.publish(self.channel, TYPING_EVENT, {"userId": self.self_id})
        except TransportError:
            self._last_broadcast = previous
            logger.debug("Typing broadcast failed on %s", self.channel, exc_info=True)
            return False
        return True

    async def _on_event(self, event_type: str, data: dict[str, Any]) -> None:
        if self._closed or event_type != TYPING_EVENT:
            return
        # Our own broadcasts come back on the shared channel.
        if data.get("userId") != self.partner_id:
            return
        self._arm_expiry()
        await self._set_typing(True)

    def _arm_expiry(self) -> None:
        if self._expiry is not None:
            self._expiry.cancel()
        self._expiry = asyncio.create_task(
            self._expire_later(), name=f"typing-expiry-{self.channel}",
        )

    async def _expire_later(self) -> None:
        await asyncio.sleep(self._typing_timeout)
        self._expiry = None
        await self._set_typing(False)

    async def _set_typing(self, value: bool) -> None:
        if self._is_typing == value:
            return
        self._is_typing = value
        if self._on_change is None or self._closed:
            return
        try:
            await self._on_change(value)
        except Exception:
            logger.exception("Typing change callback failed on %s", self.channel)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._is_typing = False

        if self._expiry is not None:
            self._expiry.cancel()
            try:
                await self._expiry
            except asyncio.CancelledError:
                pass
            self._expiry = None

        if self._subscription is not None:
            try:
                await self._subscription.unsubscribe()
            except TransportError:
                logger.debug("Presence unsubscribe failed on %s", self.channel, exc_info=True)
            self._subscription = None
        logger.debug("Left presence channel %s", self.channel)

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
