"""Per-viewer render decisions for a single message."""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.composition import ITEM_LABELS
from coach_chat.domain.offers.payload import OfferPayload, parse_offer
from coach_chat.domain.value_objects.enums import OfferStatus
from coach_chat.domain.value_objects.money import format_money


class RenderKind(StrEnum):
    PLAIN = "plain"
    OFFER_PENDING = "offer_pending"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_DECLINED = "offer_declined"


class ReadReceipt(StrEnum):
    NONE = "none"  # received messages carry no receipt
    SENT = "sent"  # single check
    READ = "read"  # double check


_OFFER_KINDS: dict[OfferStatus, RenderKind] = {
    OfferStatus.PENDING: RenderKind.OFFER_PENDING,
    OfferStatus.ACCEPTED: RenderKind.OFFER_ACCEPTED,
    OfferStatus.DECLINED: RenderKind.OFFER_DECLINED,
}


@dataclass(frozen=True, slots=True)
class MessageView:
    message: Message
    kind: RenderKind
    is_mine: bool
    receipt: ReadReceipt
    offer: OfferPayload | None = None
    can_respond: bool = False

    @property
    def text(self) -> str:
        return self.message.body or ""

    @property
    def offer_label(self) -> str | None:
        return ITEM_LABELS[self.offer.item_type] if self.offer else None

    @property
    def price_text(self) -> str | None:
        if self.offer is None or self.offer.price <= 0:
            return None
        return format_money(self.offer.price, self.offer.currency)


def is_mine(message: Message, viewer_id: str) -> bool:
    return message.sender_id == viewer_id


def read_receipt(message: Message, viewer_id: str) -> ReadReceipt:
    if not is_mine(message, viewer_id):
        return ReadReceipt.NONE
    return ReadReceipt.READ if message.read_at is not None else ReadReceipt.SENT


def render_message(message: Message, viewer_id: str) -> MessageView:
    mine = is_mine(message, viewer_id)
    receipt = read_receipt(message, viewer_id)

    offer = parse_offer(message.metadata)
    if offer is None:
        return MessageView(message=message, kind=RenderKind.PLAIN, is_mine=mine, receipt=receipt)

    return MessageView(
        message=message,
        kind=_OFFER_KINDS[offer.status],
        is_mine=mine,
        receipt=receipt,
        offer=offer,
        can_respond=(not mine and offer.is_pending and offer.issuer_id != viewer_id),
    )
