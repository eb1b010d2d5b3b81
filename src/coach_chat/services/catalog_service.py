from __future__ import annotations

import dataclasses
import uuid

from coach_chat.application.dto.message import SendMessageDTO
from coach_chat.application.dto.offer import OfferOverrides
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.composition import build_offer, summarize
from coach_chat.domain.offers.payload import dump_offer
from coach_chat.domain.value_objects.enums import ItemType
from coach_chat.domain.value_objects.money import to_minor_units
from coach_chat.services import message_service


def _assert_coach(principal: Principal) -> None:
    if not principal.is_coach:
        raise AuthorizationError("Only coaches can send offers")


async def list_catalog(
    principal: Principal,
    item_type: ItemType | None,
    uow: UnitOfWork,
) -> list[CatalogItem]:
    _assert_coach(principal)
    return await uow.catalog.list_for_coach(principal.subject_id, item_type=item_type)


def apply_overrides(item: CatalogItem, overrides: OfferOverrides) -> CatalogItem:
    changes: dict[str, object] = {}
    if overrides.name:
        changes["name"] = overrides.name
    if overrides.description is not None:
        changes["description"] = overrides.description
    if overrides.price is not None:
        try:
            changes["price_minor"] = to_minor_units(overrides.price, item.currency)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
    if overrides.session_count is not None:
        if overrides.session_count < 1:
            raise ValidationError("Session count must be at least 1")
        changes["session_count"] = overrides.session_count
    if overrides.billing_period:
        changes["billing_period"] = overrides.billing_period
    return dataclasses.replace(item, **changes) if changes else item


async def send_catalog_offer(
    principal: Principal,
    recipient_id: str,
    item_type: ItemType,
    item_id: str,
    client_msg_id: uuid.UUID,
    uow: UnitOfWork,
    *,
    overrides: OfferOverrides | None = None,
) -> tuple[Message, bool]:
    """Send one of the caller's catalog items as an interactive offer."""
    _assert_coach(principal)

    item = await uow.catalog.get_item(item_type, item_id)
    if item is None or not item.is_active:
        raise NotFoundError("Catalog item not found")
    if item.coach_id != principal.subject_id:
        raise AuthorizationError("Catalog item belongs to another coach")

    if overrides is not None:
        item = apply_overrides(item, overrides)

    offer = build_offer(item_type, item, principal.subject_id)
    dto = SendMessageDTO(
        recipient_id=recipient_id,
        client_msg_id=client_msg_id,
        body=summarize(offer),
        metadata=dump_offer(offer),
    )
    return await message_service.send_message(principal.subject_id, dto, principal, uow)
