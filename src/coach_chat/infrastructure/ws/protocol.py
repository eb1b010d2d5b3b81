"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from coach_chat.domain.events.message_created import message_snapshot
from coach_chat.view.rendering import MessageView


class WsInbound(BaseModel):
    """Client → Server."""

    # ping | conversation.open | conversation.close | typing
    # message.send | mark_read | offer.respond
    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    # conversation.snapshot | message.created | message.updated
    # conversation.updated | typing | checkout.redirect
    # send.failed | offer.failed | error | pong
    type: str
    data: dict[str, Any] = {}


def message_view_payload(view: MessageView) -> dict[str, Any]:
    """A stored message plus the viewer-specific render decisions."""
    return {
        **message_snapshot(view.message),
        "kind": view.kind.value,
        "is_mine": view.is_mine,
        "receipt": view.receipt.value,
        "can_respond": view.can_respond,
        "offer_label": view.offer_label,
        "price_text": view.price_text,
    }
