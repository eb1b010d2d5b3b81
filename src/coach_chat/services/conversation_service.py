from __future__ import annotations

from coach_chat.application.dto.principal import Principal
from coach_chat.application.uow import UnitOfWork
from coach_chat.domain.entities.conversation import Conversation


async def list_conversations(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Conversation]:
    """Conversations the caller takes part in, most recent activity first."""
    viewer_id = principal.subject_id
    latest = await uow.messages.latest_per_pair(viewer_id, limit=limit)
    if not latest:
        return []

    unread = await uow.messages.unread_counts(viewer_id)
    partner_ids = [m.pair.other(viewer_id) for m in latest]
    profiles = await uow.profiles.get_many(partner_ids)

    return [
        Conversation(
            pair=m.pair,
            partner_id=partner_id,
            partner=profiles.get(partner_id),
            last_message=m,
            unread_count=unread.get(partner_id, 0),
        )
        for m, partner_id in zip(latest, partner_ids)
    ]
