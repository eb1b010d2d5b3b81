from __future__ import annotations

import asyncio

import pytest

from coach_chat.domain.value_objects.ids import typing_channel
from coach_chat.presence.session import TYPING_EVENT, PresenceSession
from tests.conftest import CLIENT_ID, COACH_ID, FakeMonotonic


def _pair(transport, clock=None, **kwargs):
    clock = clock or FakeMonotonic()
    coach = PresenceSession(transport, COACH_ID, CLIENT_ID, clock=clock, **kwargs)
    client = PresenceSession(transport, CLIENT_ID, COACH_ID, clock=clock, **kwargs)
    return coach, client


@pytest.mark.asyncio
async def test_both_sides_share_one_channel(transport):
    coach, client = _pair(transport)
    assert coach.channel == client.channel == typing_channel(COACH_ID, CLIENT_ID)


@pytest.mark.asyncio
async def test_partner_sees_typing_but_sender_does_not(transport):
    coach, client = _pair(transport)
    async with coach, client:
        assert await coach.broadcast_typing() is True

        assert client.is_typing is True
        # The coach's own event echoes back on the shared channel.
        assert coach.is_typing is False


@pytest.mark.asyncio
async def test_third_party_events_ignored(transport):
    coach, client = _pair(transport)
    async with client:
        await transport.publish(client.channel, TYPING_EVENT, {"userId": "someone-else"})
        await transport.publish(client.channel, "read", {"userId": COACH_ID})
        assert client.is_typing is False
    assert not coach.closed


@pytest.mark.asyncio
async def test_broadcast_is_debounced(transport):
    clock = FakeMonotonic()
    coach, _ = _pair(transport, clock=clock)
    async with coach:
        assert await coach.broadcast_typing() is True
        clock.value += 1.5
        assert await coach.broadcast_typing() is False
        clock.value += 0.5
        assert await coach.broadcast_typing() is True

    assert len(transport.published) == 2
    assert transport.published[0] == (coach.channel, TYPING_EVENT, {"userId": COACH_ID})


@pytest.mark.asyncio
async def test_failed_publish_does_not_consume_window(transport):
    coach, _ = _pair(transport)
    async with coach:
        transport.fail_publish = True
        assert await coach.broadcast_typing() is False

        transport.fail_publish = False
        assert await coach.broadcast_typing() is True


@pytest.mark.asyncio
async def test_typing_expires(transport):
    coach, client = _pair(transport, typing_timeout_seconds=0.05)
    async with coach, client:
        await coach.broadcast_typing()
        assert client.is_typing is True

        await asyncio.sleep(0.1)
        assert client.is_typing is False


@pytest.mark.asyncio
async def test_new_event_rearms_expiry(transport):
    clock = FakeMonotonic()
    coach, client = _pair(transport, clock=clock, typing_timeout_seconds=0.15)
    async with coach, client:
        await coach.broadcast_typing()
        await asyncio.sleep(0.1)
        clock.value += 5
        await coach.broadcast_typing()
        await asyncio.sleep(0.1)
        # 0.2s since the first event, but only 0.1s since the second.
        assert client.is_typing is True

        await asyncio.sleep(0.1)
        assert client.is_typing is False


@pytest.mark.asyncio
async def test_on_change_is_level_triggered(transport):
    changes: list[bool] = []

    async def on_change(value: bool) -> None:
        changes.append(value)

    clock = FakeMonotonic()
    coach = PresenceSession(transport, COACH_ID, CLIENT_ID, clock=clock)
    client = PresenceSession(
        transport, CLIENT_ID, COACH_ID,
        typing_timeout_seconds=0.05,
        on_change=on_change,
    )
    async with coach, client:
        await coach.broadcast_typing()
        clock.value += 5
        await coach.broadcast_typing()
        await asyncio.sleep(0.1)

    assert changes == [True, False]


@pytest.mark.asyncio
async def test_close_leaves_channel_and_ignores_events(transport):
    coach, client = _pair(transport, typing_timeout_seconds=10)
    await coach.start()
    await client.start()
    await coach.broadcast_typing()
    assert client.is_typing is True

    await client.close()

    assert client.closed
    assert client.is_typing is False
    assert transport.listeners(client.channel) == 1
    await client._on_event(TYPING_EVENT, {"userId": COACH_ID})
    assert client.is_typing is False
    assert await client.broadcast_typing() is False
    await coach.close()
    assert transport.listeners(coach.channel) == 0


@pytest.mark.asyncio
async def test_subscribe_failure_is_not_fatal(transport):
    transport.fail_subscribe = True
    coach, _ = _pair(transport)

    await coach.start()

    assert await coach.broadcast_typing() is True
    await coach.close()
