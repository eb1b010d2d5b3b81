from __future__ import annotations

from dataclasses import dataclass
from typing import NewType
from uuid import UUID

MessageId = NewType("MessageId", UUID)
SubjectId = NewType("SubjectId", str)

TYPING_CHANNEL_PREFIX = "typing:"


@dataclass(frozen=True, slots=True)
class ConversationPair:
    """Unordered pair of participants; ``low`` sorts before ``high``."""

    low: str
    high: str

    @classmethod
    def of(cls, a: str, b: str) -> ConversationPair:
        low, high = sorted((a, b))
        return cls(low=low, high=high)

    def __contains__(self, subject_id: object) -> bool:
        return subject_id == self.low or subject_id == self.high

    def other(self, subject_id: str) -> str:
        if subject_id == self.low:
            return self.high
        if subject_id == self.high:
            return self.low
        raise ValueError(f"{subject_id!r} is not part of this conversation")

    @property
    def channel_name(self) -> str:
        return f"{TYPING_CHANNEL_PREFIX}{self.low}-{self.high}"


def typing_channel(a: str, b: str) -> str:
    return ConversationPair.of(a, b).channel_name
