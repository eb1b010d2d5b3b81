from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from coach_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    recipient_id: str
    client_msg_id: UUID
    body: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    items: list[Message]
    next_cursor: str | None = None
