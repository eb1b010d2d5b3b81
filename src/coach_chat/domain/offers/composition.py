from __future__ import annotations

from datetime import datetime
from typing import Any

from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.offers.payload import (
    OFFER_ENVELOPE_TYPE,
    OFFER_MODELS,
    OfferPayload,
    PackageOffer,
    SessionOffer,
    SubscriptionOffer,
)
from coach_chat.domain.value_objects.enums import ItemType
from coach_chat.domain.value_objects.money import format_money, normalize_currency

ITEM_ICONS: dict[ItemType, str] = {
    ItemType.PACKAGE: "📦",
    ItemType.SUBSCRIPTION: "💳",
    ItemType.DIGITAL_PRODUCT: "📚",
    ItemType.DIGITAL_BUNDLE: "🗂️",
    ItemType.TRAINING_PLAN: "🏋️",
    ItemType.MEAL_PLAN: "🥗",
    ItemType.SESSION: "📅",
}

ITEM_LABELS: dict[ItemType, str] = {
    ItemType.PACKAGE: "Package Offer",
    ItemType.SUBSCRIPTION: "Subscription Plan",
    ItemType.DIGITAL_PRODUCT: "Digital Product",
    ItemType.DIGITAL_BUNDLE: "Digital Bundle",
    ItemType.TRAINING_PLAN: "Training Plan",
    ItemType.MEAL_PLAN: "Meal Plan",
    ItemType.SESSION: "Session Offer",
}


def build_offer(item_type: ItemType, item: CatalogItem, issuer_id: str) -> OfferPayload:
    """Build a pending offer for ``item`` issued by ``issuer_id``."""
    if item_type == ItemType.SESSION:
        raise ValueError("Session offers are proposed directly, not from the catalog")
    if item.item_type != item_type:
        raise ValueError(
            f"Catalog item {item.id} is a {item.item_type}, not a {item_type}"
        )

    fields: dict[str, Any] = {
        "type": OFFER_ENVELOPE_TYPE,
        "item_type": item_type,
        "item_id": item.id,
        "item_name": item.name,
        "item_description": item.description or None,
        "price": item.price_minor,
        "currency": normalize_currency(item.currency),
        "coach_id": issuer_id,
    }
    if item_type == ItemType.PACKAGE:
        fields["session_count"] = item.session_count
    elif item_type == ItemType.SUBSCRIPTION:
        fields["billing_period"] = item.billing_period

    return OFFER_MODELS[item_type](**fields)  # type: ignore[return-value]


def build_session_offer(
    issuer_id: str,
    offer_id: str,
    *,
    session_type: str,
    proposed_start: datetime,
    duration_minutes: int,
    price_minor: int,
    currency: str,
    is_online: bool = True,
    location: str | None = None,
    notes: str | None = None,
) -> SessionOffer:
    """Build a pending session proposal. In-person sessions keep their venue."""
    return SessionOffer(
        type=OFFER_ENVELOPE_TYPE,
        item_type=ItemType.SESSION,
        item_id=offer_id,
        item_name=session_type,
        item_description=notes or None,
        price=price_minor,
        currency=normalize_currency(currency),
        coach_id=issuer_id,
        proposed_start=proposed_start,
        duration_minutes=duration_minutes,
        is_online=is_online,
        location=None if is_online else (location or None),
    )


def summarize(offer: OfferPayload) -> str:
    """Plain-text line used as the message body for an offer.

    ``{icon} {name} – {price}[/{period}]``, with the session count appended
    for packages and the time, length and venue for session proposals.
    """
    price = "Free" if offer.price == 0 else format_money(offer.price, offer.currency)
    line = f"{ITEM_ICONS[offer.item_type]} {offer.item_name} – {price}"
    if isinstance(offer, SubscriptionOffer) and offer.billing_period:
        line += f"/{offer.billing_period}"
    if isinstance(offer, SessionOffer):
        venue = "Online" if offer.is_online else (offer.location or "In person")
        when = offer.proposed_start.strftime("%a %d %b %Y %H:%M")
        line += f" ({when}, {offer.duration_minutes} min, {venue})"
    if isinstance(offer, PackageOffer) and offer.session_count:
        noun = "session" if offer.session_count == 1 else "sessions"
        line += f" ({offer.session_count} {noun})"
    return line
