from __future__ import annotations

from typing import Protocol

from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.value_objects.enums import ItemType


class CatalogReader(Protocol):
    async def get_item(self, item_type: ItemType, item_id: str) -> CatalogItem | None: ...

    async def list_for_coach(
        self, coach_id: str, *, item_type: ItemType | None = None,
    ) -> list[CatalogItem]:
        """Active items only."""
        ...
