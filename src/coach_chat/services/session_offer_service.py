"""Bespoke session proposals sent from a coach to a client."""
from __future__ import annotations

import uuid

from coach_chat.application.dto.message import SendMessageDTO
from coach_chat.application.dto.offer import SessionProposal
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import AuthorizationError, ValidationError
from coach_chat.application.ports.clock import Clock, SystemClock
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.composition import build_session_offer, summarize
from coach_chat.domain.offers.payload import dump_offer
from coach_chat.domain.value_objects.money import to_minor_units
from coach_chat.services import message_service

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 8 * 60

_clock = SystemClock()


def _validate(proposal: SessionProposal, clock: Clock) -> int:
    """Check the proposal and return its price in minor units."""
    if not proposal.session_type.strip():
        raise ValidationError("Session type is required")
    if proposal.proposed_start.tzinfo is None:
        raise ValidationError("Proposed start must include a timezone")
    if proposal.proposed_start <= clock.now():
        raise ValidationError("Proposed start must be in the future")
    if not MIN_DURATION_MINUTES <= proposal.duration_minutes <= MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )
    try:
        return to_minor_units(proposal.price, proposal.currency)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


async def send_session_offer(
    principal: Principal,
    recipient_id: str,
    proposal: SessionProposal,
    client_msg_id: uuid.UUID,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> tuple[Message, bool]:
    """Propose a session to ``recipient_id`` as an interactive offer.

    The offer id is derived from ``client_msg_id`` so a retried send carries
    the same payload.
    """
    if not principal.is_coach:
        raise AuthorizationError("Only coaches can send offers")
    price_minor = _validate(proposal, clock)

    offer = build_session_offer(
        principal.subject_id,
        str(client_msg_id),
        session_type=proposal.session_type.strip(),
        proposed_start=proposal.proposed_start,
        duration_minutes=proposal.duration_minutes,
        price_minor=price_minor,
        currency=proposal.currency,
        is_online=proposal.is_online,
        location=proposal.location,
        notes=proposal.notes,
    )
    dto = SendMessageDTO(
        recipient_id=recipient_id,
        client_msg_id=client_msg_id,
        body=summarize(offer),
        metadata=dump_offer(offer),
    )
    return await message_service.send_message(
        principal.subject_id, dto, principal, uow, clock=clock,
    )
