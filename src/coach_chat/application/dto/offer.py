from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from coach_chat.domain.entities.message import Message
from coach_chat.domain.value_objects.enums import ItemType


@dataclass(frozen=True, slots=True)
class CheckoutHandoff:
    """What the external checkout flow needs after an offer is accepted."""

    item_type: ItemType
    item_id: str
    issuer_id: str

    def to_payload(self) -> dict[str, str]:
        return {
            "itemType": self.item_type.value,
            "itemId": self.item_id,
            "issuerId": self.issuer_id,
        }


@dataclass(frozen=True, slots=True)
class OfferResponse:
    message: Message
    checkout: CheckoutHandoff | None = None


@dataclass(frozen=True, slots=True)
class OfferOverrides:
    """Per-offer edits a coach makes before sending a catalog item.

    ``price`` is in major units and is converted once, when applied.
    """

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    session_count: int | None = None
    billing_period: str | None = None


@dataclass(frozen=True, slots=True)
class SessionProposal:
    """A one-off session a coach proposes in chat.

    ``price`` is in major units; zero means the session is free.
    """

    session_type: str
    proposed_start: datetime
    duration_minutes: int
    price: Decimal = Decimal(0)
    currency: str = "GBP"
    is_online: bool = True
    location: str | None = None
    notes: str | None = None
