from __future__ import annotations

from typing import Any

import pytest

from coach_chat.config import settings
from coach_chat.workers.outbox_worker import process_batch
from tests.conftest import FakeUoW


class RecordingPublisher:
    def __init__(self, fail_on: str | None = None) -> None:
        self.published: list[tuple[str, str, dict[str, Any]]] = []
        self._fail_on = fail_on

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        if event_type == self._fail_on:
            raise ConnectionError("redis down")
        self.published.append((channel, event_type, payload))


@pytest.mark.asyncio
async def test_process_batch_publishes_on_fanout_channel():
    uow = FakeUoW()
    await uow.outbox.add("chat.message_created", {"message": {"id": "m1"}})
    await uow.outbox.add("chat.offer_accepted", {"itemId": "pkg-10"})
    publisher = RecordingPublisher()

    sent = await process_batch(uow, publisher)

    assert sent == 2
    assert [p[1] for p in publisher.published] == ["chat.message_created", "chat.offer_accepted"]
    assert {p[0] for p in publisher.published} == {settings.REDIS_PUBSUB_CHANNEL}
    assert uow._committed is True


@pytest.mark.asyncio
async def test_process_batch_keeps_going_after_publish_failure():
    uow = FakeUoW()
    await uow.outbox.add("chat.message_created", {})
    await uow.outbox.add("chat.messages_read", {})
    publisher = RecordingPublisher(fail_on="chat.message_created")

    sent = await process_batch(uow, publisher)

    assert sent == 1
    assert [p[1] for p in publisher.published] == ["chat.messages_read"]


@pytest.mark.asyncio
async def test_process_batch_empty():
    uow = FakeUoW()
    assert await process_batch(uow, RecordingPublisher()) == 0
    assert uow._committed is False
