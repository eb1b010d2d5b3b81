from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from coach_chat.domain.entities.message import Message


def message_snapshot(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "body": message.body,
        "metadata": message.metadata,
        "client_msg_id": str(message.client_msg_id),
        "created_at": message.created_at.isoformat(),
        "read_at": message.read_at.isoformat() if message.read_at else None,
    }


@dataclass(frozen=True, slots=True)
class MessageCreated:
    event_type: ClassVar[str] = "chat.message_created"

    message: Message

    def to_payload(self) -> dict[str, Any]:
        return {
            "participants": [self.message.pair.low, self.message.pair.high],
            "message": message_snapshot(self.message),
        }


def message_from_snapshot(data: dict[str, Any]) -> Message:
    """Inverse of ``message_snapshot``; raises KeyError/ValueError on bad input."""
    return Message(
        id=UUID(data["id"]),
        sender_id=data["sender_id"],
        recipient_id=data["recipient_id"],
        body=data.get("body"),
        metadata=data.get("metadata"),
        client_msg_id=UUID(data["client_msg_id"]),
        created_at=datetime.fromisoformat(data["created_at"]),
        read_at=datetime.fromisoformat(data["read_at"]) if data.get("read_at") else None,
    )
