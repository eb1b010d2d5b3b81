from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from coach_chat.domain.value_objects.ids import ConversationPair


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: str
    recipient_id: str
    body: str | None
    metadata: dict[str, Any] | None
    client_msg_id: UUID
    created_at: datetime
    read_at: datetime | None = None

    @property
    def pair(self) -> ConversationPair:
        return ConversationPair.of(self.sender_id, self.recipient_id)
