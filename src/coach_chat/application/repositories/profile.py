from __future__ import annotations

from typing import Protocol

from coach_chat.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get(self, subject_id: str) -> Profile | None: ...

    async def get_many(self, subject_ids: list[str]) -> dict[str, Profile]: ...
