from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar
from uuid import UUID


@dataclass(frozen=True, slots=True)
class OfferAccepted:
    """Checkout handoff for the external payment flow."""

    event_type: ClassVar[str] = "chat.offer_accepted"

    message_id: UUID
    responder_id: str
    item_type: str
    item_id: str
    issuer_id: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "participants": sorted((self.responder_id, self.issuer_id)),
            "message_id": str(self.message_id),
            "responder_id": self.responder_id,
            "itemType": self.item_type,
            "itemId": self.item_id,
            "issuerId": self.issuer_id,
        }
