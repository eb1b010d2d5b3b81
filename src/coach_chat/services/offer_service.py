"""Offer responses: the only writer of an offer's status after it is sent."""
from __future__ import annotations

import logging
import uuid

from coach_chat.application.dto.offer import CheckoutHandoff, OfferResponse
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from coach_chat.application.policies.permissions import assert_can_respond
from coach_chat.application.ports.clock import Clock, SystemClock
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.events.offer_accepted import OfferAccepted
from coach_chat.domain.offers.lifecycle import can_transition, resolution_patch
from coach_chat.domain.offers.payload import parse_offer
from coach_chat.domain.value_objects.enums import OfferStatus
from coach_chat.services.message_service import (
    OFFER_ALREADY_RESOLVED,
    compare_and_set_offer,
)

logger = logging.getLogger(__name__)

_clock = SystemClock()


async def respond(
    message_id: uuid.UUID,
    responder: Principal,
    decision: OfferStatus,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> OfferResponse:
    """Accept or decline the offer carried by ``message_id``.

    The status write is a compare-and-swap on ``status == pending`` so two
    concurrent responses can never both succeed. On acceptance the returned
    ``checkout`` tells the caller where to hand off for payment.
    """
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")

    offer = parse_offer(message.metadata)
    if offer is None:
        raise ConflictError("Message does not carry an offer")

    assert_can_respond(responder.subject_id, message, offer)

    # A resolved offer is a conflict whatever the decision.
    if not offer.is_pending:
        raise ConflictError(OFFER_ALREADY_RESOLVED)
    if not can_transition(offer.status, decision):
        raise ValidationError(f"Unsupported decision: {decision}")

    updated = await compare_and_set_offer(
        message_id, resolution_patch(decision, clock.now()), uow,
    )

    checkout = None
    if decision == OfferStatus.ACCEPTED:
        checkout = CheckoutHandoff(
            item_type=offer.item_type,
            item_id=offer.item_id,
            issuer_id=offer.issuer_id,
        )
        await uow.outbox.add_event(
            OfferAccepted(
                message_id=message_id,
                responder_id=responder.subject_id,
                item_type=offer.item_type.value,
                item_id=offer.item_id,
                issuer_id=offer.issuer_id,
            )
        )

    await uow.commit()
    logger.info(
        "Offer %s on message %s %s by %s",
        offer.item_id, message_id, decision.value, responder.subject_id,
    )
    return OfferResponse(message=updated, checkout=checkout)
