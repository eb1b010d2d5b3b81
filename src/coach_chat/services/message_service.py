from __future__ import annotations

import logging
import uuid
from typing import Any

from coach_chat.application.dto.message import MessagePage, SendMessageDTO
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from coach_chat.application.pagination import decode_cursor, encode_cursor
from coach_chat.application.policies.permissions import (
    assert_distinct_participants,
    assert_is_sender,
)
from coach_chat.application.ports.clock import Clock, SystemClock
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.entities.message import Message
from coach_chat.domain.events.message_created import MessageCreated
from coach_chat.domain.events.message_updated import MessageUpdated
from coach_chat.domain.offers.composition import summarize
from coach_chat.domain.offers.payload import claims_offer, dump_offer, parse_offer
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus
from coach_chat.domain.value_objects.ids import ConversationPair

logger = logging.getLogger(__name__)

OFFER_ALREADY_RESOLVED = "This offer has already been responded to"

_clock = SystemClock()


async def _checked_metadata(
    principal: Principal,
    metadata: dict[str, Any] | None,
    uow: UnitOfWork,
) -> tuple[dict[str, Any] | None, str | None]:
    """Validate offer-tagged metadata. Return (metadata, summary line).

    Only coaches issue offers. A catalog offer must name an active item the
    sender owns; session offers are ad hoc and have no catalog entry.
    """
    if metadata is None or not claims_offer(metadata):
        return metadata, None

    if not principal.is_coach:
        raise AuthorizationError("Only coaches can send offers")

    offer = parse_offer(metadata)
    if offer is None:
        raise ValidationError("Malformed offer payload")
    if offer.status != OfferStatus.PENDING:
        raise ValidationError("A new offer must be pending")
    if offer.issuer_id != principal.subject_id:
        raise ValidationError("Offer issuer must be the sender")

    if offer.item_type != ItemType.SESSION:
        item = await uow.catalog.get_item(offer.item_type, offer.item_id)
        if item is None or not item.is_active:
            raise NotFoundError("Catalog item not found")
        if item.coach_id != principal.subject_id:
            raise AuthorizationError("Catalog item belongs to another coach")
    return {**metadata, **dump_offer(offer)}, summarize(offer)


async def send_message(
    sender_id: str,
    dto: SendMessageDTO,
    principal: Principal,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> tuple[Message, bool]:
    """Create a message idempotently.

    Returns (message, created). If a message with the same client_msg_id
    already exists the existing one is returned with created=False.
    """
    assert_is_sender(principal, sender_id)
    assert_distinct_participants(sender_id, dto.recipient_id)

    has_text = bool(dto.body and dto.body.strip())
    if not has_text and dto.metadata is None:
        raise ValidationError("Message body is empty")

    metadata, summary = await _checked_metadata(principal, dto.metadata, uow)
    body = dto.body if has_text else summary

    if await uow.profiles.get(dto.recipient_id) is None:
        raise NotFoundError("Recipient not found")

    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        recipient_id=dto.recipient_id,
        body=body,
        metadata=metadata,
        client_msg_id=dto.client_msg_id,
        created_at=clock.now(),
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.outbox.add_event(MessageCreated(msg))
        await uow.commit()
        logger.info("Message %s sent %s -> %s", msg.id, sender_id, dto.recipient_id)
    else:
        logger.debug("Duplicate send for client_msg_id=%s", dto.client_msg_id)

    return msg, created


async def list_messages(
    principal: Principal,
    partner_id: str,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> MessagePage:
    """One page of the conversation with ``partner_id``, oldest first."""
    assert_distinct_participants(principal.subject_id, partner_id)
    if cursor:
        decode_cursor(cursor)

    pair = ConversationPair.of(principal.subject_id, partner_id)
    items = await uow.messages.list_messages(pair, cursor=cursor, limit=limit)
    next_cursor = None
    if len(items) == limit:
        last = items[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return MessagePage(items=items, next_cursor=next_cursor)


async def compare_and_set_offer(
    message_id: uuid.UUID,
    patch: dict[str, Any],
    uow: UnitOfWork,
) -> Message:
    """Rewrite an offer's metadata while its status is still pending.

    Does not commit.
    """
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")

    offer = parse_offer(message.metadata)
    if offer is None:
        raise ConflictError("Message does not carry an offer")
    if not offer.is_pending:
        raise ConflictError(OFFER_ALREADY_RESOLVED)

    merged = {**(message.metadata or {}), **patch}
    updated = await uow.messages_w.compare_and_set_metadata(
        message_id, OfferStatus.PENDING.value, merged,
    )
    if updated is None:
        # Lost the race, or the row disappeared in between.
        if await uow.messages.get_by_id(message_id) is None:
            raise NotFoundError("Message not found")
        raise ConflictError(OFFER_ALREADY_RESOLVED)

    await uow.outbox.add_event(MessageUpdated(updated, change="offer_status"))
    return updated


async def update_metadata(
    message_id: uuid.UUID,
    patch: dict[str, Any],
    uow: UnitOfWork,
) -> Message:
    updated = await compare_and_set_offer(message_id, patch, uow)
    await uow.commit()
    return updated
