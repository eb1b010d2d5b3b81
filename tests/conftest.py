"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import dataclasses
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import TransportError
from coach_chat.application.pagination import decode_cursor
from coach_chat.application.ports.presence import OnPresenceEvent
from coach_chat.application.repositories.outbox import OutboxEvent, OutboxRecord
from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.entities.message import Message
from coach_chat.domain.entities.profile import Profile
from coach_chat.domain.offers.composition import build_offer, summarize
from coach_chat.domain.offers.payload import dump_offer
from coach_chat.domain.value_objects.enums import ItemType, ParticipantRole
from coach_chat.domain.value_objects.ids import ConversationPair

COACH_ID = "coach-1"
CLIENT_ID = "client-1"
T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def coach_principal() -> Principal:
    return Principal(subject_id=COACH_ID, role=ParticipantRole.COACH)


@pytest.fixture
def client_principal() -> Principal:
    return Principal(subject_id=CLIENT_ID, role=ParticipantRole.CLIENT)


def make_message(
    *,
    sender_id: str = CLIENT_ID,
    recipient_id: str = COACH_ID,
    body: str | None = "hello",
    metadata: dict[str, Any] | None = None,
    created_at: datetime | None = None,
    read_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        recipient_id=recipient_id,
        body=body,
        metadata=metadata,
        client_msg_id=uuid.uuid4(),
        created_at=created_at or datetime.now(timezone.utc),
        read_at=read_at,
    )


def make_catalog_item(
    *,
    item_id: str = "pkg-10",
    coach_id: str = COACH_ID,
    item_type: ItemType = ItemType.PACKAGE,
    name: str = "10 PT Sessions",
    price_minor: int = 45000,
    currency: str = "GBP",
    session_count: int | None = 10,
    billing_period: str | None = None,
    is_active: bool = True,
) -> CatalogItem:
    return CatalogItem(
        id=item_id,
        coach_id=coach_id,
        item_type=item_type,
        name=name,
        description=None,
        price_minor=price_minor,
        currency=currency,
        session_count=session_count if item_type == ItemType.PACKAGE else None,
        billing_period=billing_period,
        is_active=is_active,
    )


def make_offer_message(
    *,
    coach_id: str = COACH_ID,
    client_id: str = CLIENT_ID,
    item: CatalogItem | None = None,
    created_at: datetime | None = None,
) -> Message:
    item = item or make_catalog_item(coach_id=coach_id)
    offer = build_offer(item.item_type, item, coach_id)
    return make_message(
        sender_id=coach_id,
        recipient_id=client_id,
        body=summarize(offer),
        metadata=dump_offer(offer),
        created_at=created_at,
    )


def _sort_key(m: Message) -> tuple[datetime, UUID]:
    return m.created_at, m.id


@dataclass
class FakeMessageReader:
    _store: dict[UUID, Message] = field(default_factory=dict)

    def add(self, *messages: Message) -> None:
        for m in messages:
            self._store[m.id] = m

    async def get_by_id(self, message_id: UUID) -> Message | None:
        # Yield so concurrent callers interleave like real I/O.
        await asyncio.sleep(0)
        return self._store.get(message_id)

    async def list_messages(
        self,
        pair: ConversationPair,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        items = sorted((m for m in self._store.values() if m.pair == pair), key=_sort_key)
        if cursor:
            after = decode_cursor(cursor)
            items = [m for m in items if _sort_key(m) > after]
        return items[:limit]

    async def latest_per_pair(self, subject_id: str, *, limit: int = 50) -> list[Message]:
        latest: dict[ConversationPair, Message] = {}
        for m in self._store.values():
            if subject_id not in m.pair:
                continue
            current = latest.get(m.pair)
            if current is None or _sort_key(m) > _sort_key(current):
                latest[m.pair] = m
        return sorted(latest.values(), key=_sort_key, reverse=True)[:limit]

    async def unread_counts(self, recipient_id: str) -> dict[str, int]:
        return dict(
            Counter(
                m.sender_id
                for m in self._store.values()
                if m.recipient_id == recipient_id and m.read_at is None
            )
        )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    cas_calls: int = 0

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        existing = await self.get_by_client_msg_id(message.sender_id, message.client_msg_id)
        if existing is not None:
            return existing, False
        self._reader._store[message.id] = message
        return message, True

    async def get_by_client_msg_id(self, sender_id: str, client_msg_id: UUID) -> Message | None:
        for m in self._reader._store.values():
            if m.sender_id == sender_id and m.client_msg_id == client_msg_id:
                return m
        return None

    async def mark_read(self, message_id: UUID, reader_id: str, ts: datetime) -> Message | None:
        m = self._reader._store.get(message_id)
        if m is None or m.recipient_id != reader_id or m.read_at is not None:
            return None
        updated = dataclasses.replace(m, read_at=ts)
        self._reader._store[message_id] = updated
        return updated

    async def mark_conversation_read(self, reader_id: str, sender_id: str, ts: datetime) -> int:
        count = 0
        for mid, m in list(self._reader._store.items()):
            if m.recipient_id == reader_id and m.sender_id == sender_id and m.read_at is None:
                self._reader._store[mid] = dataclasses.replace(m, read_at=ts)
                count += 1
        return count

    async def compare_and_set_metadata(
        self,
        message_id: UUID,
        expected_status: str,
        metadata: dict[str, Any],
    ) -> Message | None:
        # Check and write with no await in between, like a single UPDATE.
        self.cas_calls += 1
        m = self._reader._store.get(message_id)
        if m is None or (m.metadata or {}).get("status") != expected_status:
            return None
        updated = dataclasses.replace(m, metadata=metadata)
        self._reader._store[message_id] = updated
        return updated


@dataclass
class FakeProfileReader:
    _profiles: dict[str, Profile] = field(default_factory=dict)

    def add(self, subject_id: str, role: ParticipantRole = ParticipantRole.CLIENT) -> Profile:
        profile = Profile(id=subject_id, display_name=subject_id.title(), avatar_url=None, role=role)
        self._profiles[subject_id] = profile
        return profile

    async def get(self, subject_id: str) -> Profile | None:
        return self._profiles.get(subject_id)

    async def get_many(self, subject_ids: list[str]) -> dict[str, Profile]:
        return {sid: self._profiles[sid] for sid in subject_ids if sid in self._profiles}


@dataclass
class FakeCatalogReader:
    _items: list[CatalogItem] = field(default_factory=list)

    async def get_item(self, item_type: ItemType, item_id: str) -> CatalogItem | None:
        for item in self._items:
            if item.id == item_id and item.item_type == item_type:
                return item
        return None

    async def list_for_coach(
        self, coach_id: str, *, item_type: ItemType | None = None,
    ) -> list[CatalogItem]:
        return [
            item for item in self._items
            if item.coach_id == coach_id
            and item.is_active
            and (item_type is None or item.item_type == item_type)
        ]


@dataclass
class FakeOutboxWriter:
    _records: list[dict[str, Any]] = field(default_factory=list)

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._records.append({"event_type": event_type, "payload": payload})

    async def add_event(self, event: OutboxEvent) -> None:
        await self.add(event.event_type, event.to_payload())

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        return [
            OutboxRecord(id=i, event_type=r["event_type"], payload=r["payload"], attempts=0)
            for i, r in enumerate(self._records[:batch_size])
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        pass

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        pass

    def event_types(self) -> list[str]:
        return [r["event_type"] for r in self._records]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    profiles: FakeProfileReader = field(default_factory=FakeProfileReader)
    catalog: FakeCatalogReader = field(default_factory=FakeCatalogReader)
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    commits: int = 0
    fail_with: Exception | None = None
    fail_next_commit: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        if self.fail_next_commit:
            self.fail_next_commit = False
            raise RuntimeError("connection lost")
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> FakeUoW:
        if self.fail_with is not None:
            raise self.fail_with
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        pass

    def factory(self) -> FakeUoW:
        """Use as a ``UoWFactory``: every unit of work shares this store."""
        return self


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.profiles.add(COACH_ID, ParticipantRole.COACH)
    uow.profiles.add(CLIENT_ID, ParticipantRole.CLIENT)
    return uow


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


@dataclass
class FakeMonotonic:
    value: float = 100.0

    def __call__(self) -> float:
        return self.value


class _Subscription:
    def __init__(self, transport: InMemoryPresenceTransport, channel: str, callback: OnPresenceEvent) -> None:
        self._transport = transport
        self.channel = channel
        self.callback = callback

    async def unsubscribe(self) -> None:
        self._transport.subscribers[self.channel].remove(self)


class InMemoryPresenceTransport:
    """Delivers every publish to all subscribers of the channel, sender included."""

    def __init__(self) -> None:
        self.subscribers: dict[str, list[_Subscription]] = {}
        self.published: list[tuple[str, str, dict[str, Any]]] = []
        self.fail_publish = False
        self.fail_subscribe = False

    async def subscribe(self, channel: str, callback: OnPresenceEvent) -> _Subscription:
        if self.fail_subscribe:
            raise TransportError("subscribe failed")
        sub = _Subscription(self, channel, callback)
        self.subscribers.setdefault(channel, []).append(sub)
        return sub

    async def publish(self, channel: str, event_type: str, data: dict[str, Any]) -> None:
        if self.fail_publish:
            raise TransportError("publish failed")
        self.published.append((channel, event_type, data))
        for sub in list(self.subscribers.get(channel, ())):
            await sub.callback(event_type, data)

    def listeners(self, channel: str) -> int:
        return len(self.subscribers.get(channel, ()))


@pytest.fixture
def transport() -> InMemoryPresenceTransport:
    return InMemoryPresenceTransport()
