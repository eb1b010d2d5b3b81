from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar


@dataclass(frozen=True, slots=True)
class MessagesRead:
    event_type: ClassVar[str] = "chat.messages_read"

    reader_id: str
    partner_id: str
    count: int
    read_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "participants": sorted((self.reader_id, self.partner_id)),
            "reader_id": self.reader_id,
            "partner_id": self.partner_id,
            "count": self.count,
            "read_at": self.read_at.isoformat(),
        }
