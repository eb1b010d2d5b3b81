from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.value_objects.enums import ItemType
from coach_chat.infrastructure.db.mappers import catalog_item as mapper
from coach_chat.infrastructure.db.models.catalog_item import CatalogItemModel


class CatalogReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_item(self, item_type: ItemType, item_id: str) -> CatalogItem | None:
        stmt = select(CatalogItemModel).where(
            CatalogItemModel.id == item_id,
            CatalogItemModel.item_type == item_type.value,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_coach(
        self, coach_id: str, *, item_type: ItemType | None = None,
    ) -> list[CatalogItem]:
        stmt = (
            select(CatalogItemModel)
            .where(
                CatalogItemModel.coach_id == coach_id,
                CatalogItemModel.is_active.is_(True),
            )
            .order_by(CatalogItemModel.item_type, CatalogItemModel.name)
        )
        if item_type is not None:
            stmt = stmt.where(CatalogItemModel.item_type == item_type.value)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
