from __future__ import annotations

from coach_chat.domain.entities.message import Message
from coach_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        recipient_id=model.recipient_id,
        body=model.body,
        metadata=model.meta,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        read_at=model.read_at,
    )


def entity_to_values(entity: Message) -> dict:
    pair = entity.pair
    return {
        "id": entity.id,
        "sender_id": entity.sender_id,
        "recipient_id": entity.recipient_id,
        "participant_low": pair.low,
        "participant_high": pair.high,
        "body": entity.body,
        "meta": entity.metadata,
        "client_msg_id": entity.client_msg_id,
        "created_at": entity.created_at,
        "read_at": entity.read_at,
    }
