from __future__ import annotations

from dataclasses import dataclass

from coach_chat.domain.value_objects.enums import ItemType


@dataclass(frozen=True, slots=True)
class CatalogItem:
    id: str
    coach_id: str
    item_type: ItemType
    name: str
    description: str | None
    price_minor: int
    currency: str
    session_count: int | None = None
    billing_period: str | None = None
    is_active: bool = True
