from __future__ import annotations

from dataclasses import dataclass

from coach_chat.domain.value_objects.enums import ParticipantRole


@dataclass(frozen=True, slots=True)
class Profile:
    id: str
    display_name: str
    avatar_url: str | None
    role: ParticipantRole
