from __future__ import annotations

from dataclasses import dataclass

from coach_chat.domain.value_objects.enums import ParticipantRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    subject_id: str
    role: ParticipantRole = ParticipantRole.CLIENT

    @property
    def is_coach(self) -> bool:
        return self.role == ParticipantRole.COACH

    @property
    def principal_key(self) -> str:
        """Unique key for WS connection registry."""
        return self.subject_id
