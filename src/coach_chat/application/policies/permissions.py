from __future__ import annotations

from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.payload import OfferPayload


def assert_is_sender(principal: Principal, sender_id: str) -> None:
    """Only the authenticated caller may send as itself."""
    if principal.subject_id != sender_id:
        raise AuthorizationError("Sender is not a participant of this conversation")


def assert_distinct_participants(a: str, b: str) -> None:
    if a == b:
        raise ValidationError("A conversation needs two different participants")


def assert_message_access(principal: Principal, message: Message | None) -> Message:
    """Raise if message doesn't exist or principal is not one of its two participants."""
    if message is None:
        raise NotFoundError("Message not found")
    if principal.subject_id not in message.pair:
        raise AuthorizationError("Not a participant of this conversation")
    return message


def assert_can_respond(responder_id: str, message: Message, offer: OfferPayload) -> None:
    """Only the receiving side of an offer may accept or decline it."""
    if responder_id not in message.pair:
        raise AuthorizationError("Not a participant of this conversation")
    if responder_id == offer.issuer_id or responder_id == message.sender_id:
        raise AuthorizationError("You cannot respond to your own offer")
