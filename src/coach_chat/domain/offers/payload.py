"""Offer payload carried in a message's ``metadata`` column.

The payload is a tagged union over ``itemType``. Parsing never raises:
anything that does not validate is simply "not an offer" and the message
renders as plain text.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from coach_chat.domain.value_objects.enums import ItemType, OfferStatus

OFFER_ENVELOPE_TYPE = "quick_send"
OFFER_VERSION = 1


class _OfferBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    type: Literal["quick_send"]
    version: int = OFFER_VERSION
    item_id: str = Field(min_length=1)
    item_name: str = Field(min_length=1)
    item_description: str | None = None
    price: Annotated[int, Field(strict=True, ge=0)]
    currency: str = Field(pattern=r"^[A-Z]{3}$")
    coach_id: str = Field(min_length=1)
    status: OfferStatus = OfferStatus.PENDING
    responded_at: datetime | None = None

    @property
    def issuer_id(self) -> str:
        return self.coach_id

    @property
    def is_pending(self) -> bool:
        return self.status == OfferStatus.PENDING


class PackageOffer(_OfferBase):
    item_type: Literal[ItemType.PACKAGE]
    session_count: int | None = Field(default=None, ge=1)


class SubscriptionOffer(_OfferBase):
    item_type: Literal[ItemType.SUBSCRIPTION]
    billing_period: str | None = None


class DigitalProductOffer(_OfferBase):
    item_type: Literal[ItemType.DIGITAL_PRODUCT]


class DigitalBundleOffer(_OfferBase):
    item_type: Literal[ItemType.DIGITAL_BUNDLE]


class TrainingPlanOffer(_OfferBase):
    item_type: Literal[ItemType.TRAINING_PLAN]


class MealPlanOffer(_OfferBase):
    item_type: Literal[ItemType.MEAL_PLAN]


class SessionOffer(_OfferBase):
    """A bespoke session proposal. ``item_name`` holds the session type."""

    item_type: Literal[ItemType.SESSION]
    proposed_start: datetime
    duration_minutes: int = Field(ge=1)
    is_online: bool = True
    location: str | None = None


OfferPayload = Annotated[
    Union[
        PackageOffer,
        SubscriptionOffer,
        DigitalProductOffer,
        DigitalBundleOffer,
        TrainingPlanOffer,
        MealPlanOffer,
        SessionOffer,
    ],
    Field(discriminator="item_type"),
]

_ADAPTER: TypeAdapter[OfferPayload] = TypeAdapter(OfferPayload)

OFFER_MODELS: dict[ItemType, type[_OfferBase]] = {
    ItemType.PACKAGE: PackageOffer,
    ItemType.SUBSCRIPTION: SubscriptionOffer,
    ItemType.DIGITAL_PRODUCT: DigitalProductOffer,
    ItemType.DIGITAL_BUNDLE: DigitalBundleOffer,
    ItemType.TRAINING_PLAN: TrainingPlanOffer,
    ItemType.MEAL_PLAN: MealPlanOffer,
    ItemType.SESSION: SessionOffer,
}


def parse_offer(raw: object) -> OfferPayload | None:
    """Return the offer held in ``raw`` or None if it is not a valid offer."""
    if raw is None:
        return None
    try:
        if isinstance(raw, (str, bytes)):
            return _ADAPTER.validate_json(raw)
        if isinstance(raw, Mapping):
            return _ADAPTER.validate_python(dict(raw))
    except PydanticValidationError:
        return None
    return None


def claims_offer(raw: object) -> bool:
    """True when metadata is tagged as an offer envelope, valid or not."""
    return isinstance(raw, Mapping) and raw.get("type") == OFFER_ENVELOPE_TYPE


def dump_offer(offer: OfferPayload) -> dict[str, Any]:
    return offer.model_dump(mode="json", by_alias=True, exclude_none=True)
