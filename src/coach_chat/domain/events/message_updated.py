from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from coach_chat.domain.entities.message import Message
from coach_chat.domain.events.message_created import message_snapshot


@dataclass(frozen=True, slots=True)
class MessageUpdated:
    """A stored message changed: read receipt or offer resolution."""

    event_type: ClassVar[str] = "chat.message_updated"

    message: Message
    change: str  # "read" | "offer_status"

    def to_payload(self) -> dict[str, Any]:
        return {
            "participants": [self.message.pair.low, self.message.pair.high],
            "change": self.change,
            "message": message_snapshot(self.message),
        }
