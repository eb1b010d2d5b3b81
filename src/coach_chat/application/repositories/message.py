from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from coach_chat.domain.entities.message import Message
from coach_chat.domain.value_objects.ids import ConversationPair


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        pair: ConversationPair,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Oldest first, strictly after ``cursor`` when given."""
        ...

    async def latest_per_pair(self, subject_id: str, *, limit: int = 50) -> list[Message]:
        """Last message of every conversation ``subject_id`` takes part in, newest first."""
        ...

    async def unread_counts(self, recipient_id: str) -> dict[str, int]:
        """Unread message count per sender for ``recipient_id``."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_msg_id → return existing."""
        ...

    async def get_by_client_msg_id(
        self,
        sender_id: str,
        client_msg_id: UUID,
    ) -> Message | None: ...

    async def mark_read(
        self, message_id: UUID, reader_id: str, ts: datetime,
    ) -> Message | None:
        """Set read_at if unset and ``reader_id`` is the recipient. Return the updated row."""
        ...

    async def mark_conversation_read(
        self, reader_id: str, sender_id: str, ts: datetime,
    ) -> int: ...

    async def compare_and_set_metadata(
        self,
        message_id: UUID,
        expected_status: str,
        metadata: dict[str, Any],
    ) -> Message | None:
        """Replace metadata only while metadata.status == expected_status.

        Return the updated message, or None if the guard did not match.
        """
        ...
