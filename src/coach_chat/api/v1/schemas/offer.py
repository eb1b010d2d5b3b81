from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coach_chat.api.v1.schemas.message import MessageResponse
from coach_chat.domain.value_objects.enums import ItemType


class OfferOverridesRequest(BaseModel):
    name: str | None = Field(None, max_length=200)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, description="Major units, e.g. 49.99")
    session_count: int | None = Field(None, ge=1)
    billing_period: str | None = None


class SendOfferRequest(BaseModel):
    client_msg_id: UUID
    item_type: ItemType
    item_id: str
    overrides: OfferOverridesRequest | None = None


class SendSessionOfferRequest(BaseModel):
    client_msg_id: UUID
    session_type: str = Field(min_length=1, max_length=200)
    proposed_start: datetime
    duration_minutes: int = Field(ge=1)
    price: Decimal = Field(Decimal(0), ge=0, description="Major units; 0 for a free session")
    currency: str = "GBP"
    is_online: bool = True
    location: str | None = Field(None, max_length=300)
    notes: str | None = Field(None, max_length=2000)


class RespondOfferRequest(BaseModel):
    decision: Literal["accepted", "declined"]


class CheckoutHandoffResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    item_type: ItemType
    item_id: str
    issuer_id: str


class RespondOfferResponse(BaseModel):
    message: MessageResponse
    checkout: CheckoutHandoffResponse | None = None

    model_config = {"from_attributes": True}
