from __future__ import annotations

from dataclasses import dataclass

from coach_chat.domain.entities.message import Message
from coach_chat.domain.entities.profile import Profile
from coach_chat.domain.value_objects.ids import ConversationPair


@dataclass(frozen=True, slots=True)
class Conversation:
    """Derived view of a pair's history as seen by one participant."""

    pair: ConversationPair
    partner_id: str
    partner: Profile | None
    last_message: Message
    unread_count: int
