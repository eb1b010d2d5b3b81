from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from coach_chat.application.pagination import decode_cursor
from coach_chat.domain.entities.message import Message
from coach_chat.domain.value_objects.ids import ConversationPair
from coach_chat.infrastructure.db.mappers import message as mapper
from coach_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id, populate_existing=True)
        return mapper.model_to_entity(model) if model else None

    async def list_messages(
        self,
        pair: ConversationPair,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.participant_low == pair.low,
                MessageModel.participant_high == pair.high,
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if cursor:
            ts, mid = decode_cursor(cursor)
            stmt = stmt.where(
                (MessageModel.created_at > ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id > mid))
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def latest_per_pair(self, subject_id: str, *, limit: int = 50) -> list[Message]:
        inner = (
            select(MessageModel)
            .where(
                or_(
                    MessageModel.participant_low == subject_id,
                    MessageModel.participant_high == subject_id,
                )
            )
            .distinct(MessageModel.participant_low, MessageModel.participant_high)
            .order_by(
                MessageModel.participant_low,
                MessageModel.participant_high,
                MessageModel.created_at.desc(),
                MessageModel.id.desc(),
            )
            .subquery()
        )
        latest = aliased(MessageModel, inner)
        stmt = (
            select(latest)
            .order_by(latest.created_at.desc(), latest.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def unread_counts(self, recipient_id: str) -> dict[str, int]:
        stmt = (
            select(MessageModel.sender_id, func.count())
            .where(
                MessageModel.recipient_id == recipient_id,
                MessageModel.read_at.is_(None),
            )
            .group_by(MessageModel.sender_id)
        )
        result = await self._session.execute(stmt)
        return {sender_id: count for sender_id, count in result.all()}


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        stmt = (
            pg_insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .on_conflict_do_nothing(constraint="uq_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Conflict: the sender already used this client_msg_id
        existing = await self.get_by_client_msg_id(message.sender_id, message.client_msg_id)
        assert existing is not None
        return existing, False

    async def get_by_client_msg_id(
        self,
        sender_id: str,
        client_msg_id: UUID,
    ) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.sender_id == sender_id,
            MessageModel.client_msg_id == client_msg_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def mark_read(
        self, message_id: UUID, reader_id: str, ts: datetime,
    ) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id == message_id,
                MessageModel.recipient_id == reader_id,
                MessageModel.read_at.is_(None),
            )
            .values(read_at=ts)
            .returning(MessageModel)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def mark_conversation_read(
        self, reader_id: str, sender_id: str, ts: datetime,
    ) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.recipient_id == reader_id,
                MessageModel.sender_id == sender_id,
                MessageModel.read_at.is_(None),
            )
            .values(read_at=ts)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def compare_and_set_metadata(
        self,
        message_id: UUID,
        expected_status: str,
        metadata: dict[str, Any],
    ) -> Message | None:
        # Single guarded UPDATE: of two concurrent responders only one matches.
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id == message_id,
                MessageModel.meta["status"].astext == expected_status,
            )
            .values(meta=metadata)
            .returning(MessageModel)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
