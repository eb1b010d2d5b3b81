from __future__ import annotations

from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.value_objects.enums import ItemType
from coach_chat.infrastructure.db.models.catalog_item import CatalogItemModel


def model_to_entity(model: CatalogItemModel) -> CatalogItem:
    return CatalogItem(
        id=model.id,
        coach_id=model.coach_id,
        item_type=ItemType(model.item_type),
        name=model.name,
        description=model.description,
        price_minor=model.price_minor,
        currency=model.currency,
        session_count=model.session_count,
        billing_period=model.billing_period,
        is_active=model.is_active,
    )
