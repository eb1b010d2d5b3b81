from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coach_chat.domain.entities.profile import Profile
from coach_chat.infrastructure.db.mappers import profile as mapper
from coach_chat.infrastructure.db.models.profile import ProfileModel


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, subject_id: str) -> Profile | None:
        model = await self._session.get(ProfileModel, subject_id)
        return mapper.model_to_entity(model) if model else None

    async def get_many(self, subject_ids: list[str]) -> dict[str, Profile]:
        if not subject_ids:
            return {}
        stmt = select(ProfileModel).where(ProfileModel.id.in_(set(subject_ids)))
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
