from __future__ import annotations

import uuid

from coach_chat.application.dto.principal import Principal
from coach_chat.application.policies.permissions import (
    assert_distinct_participants,
    assert_message_access,
)
from coach_chat.application.ports.clock import Clock, SystemClock
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.events.message_updated import MessageUpdated
from coach_chat.domain.events.messages_read import MessagesRead

_clock = SystemClock()


async def mark_read(
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> None:
    """Stamp read_at on a received message. The first read wins."""
    message = await uow.messages.get_by_id(message_id)
    message = assert_message_access(principal, message)

    if message.recipient_id != principal.subject_id or message.read_at is not None:
        return

    updated = await uow.messages_w.mark_read(message_id, principal.subject_id, clock.now())
    if updated is None:
        return
    await uow.outbox.add_event(MessageUpdated(updated, change="read"))
    await uow.commit()


async def mark_conversation_read(
    principal: Principal,
    partner_id: str,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> int:
    """Mark everything ``partner_id`` sent to the caller as read."""
    assert_distinct_participants(principal.subject_id, partner_id)
    now = clock.now()
    count = await uow.messages_w.mark_conversation_read(principal.subject_id, partner_id, now)
    if count:
        await uow.outbox.add_event(
            MessagesRead(
                reader_id=principal.subject_id,
                partner_id=partner_id,
                count=count,
                read_at=now,
            )
        )
        await uow.commit()
    return count
