from __future__ import annotations

from pydantic import BaseModel

from coach_chat.domain.value_objects.enums import ItemType


class CatalogItemResponse(BaseModel):
    id: str
    item_type: ItemType
    name: str
    description: str | None
    price_minor: int
    currency: str
    price_text: str
    session_count: int | None
    billing_period: str | None
