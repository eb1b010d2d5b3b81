"""Stateful controller behind one open conversation screen.

The controller keeps the ordered, de-duplicated list of rendered messages,
turns service errors into typed outcomes, and drops any result that arrives
after it has been closed.
"""
from __future__ import annotations

import bisect
import dataclasses
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Any, Awaitable, Callable, Self

from coach_chat.application.dto.message import SendMessageDTO
from coach_chat.application.dto.offer import CheckoutHandoff, OfferOverrides, SessionProposal
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    AppError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from coach_chat.application.uow import UnitOfWork, UoWFactory
from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.payload import parse_offer
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus
from coach_chat.domain.value_objects.ids import ConversationPair
from coach_chat.presence.session import PresenceSession
from coach_chat.services import (
    catalog_service,
    message_service,
    offer_service,
    read_state_service,
    session_offer_service,
)
from coach_chat.view.rendering import MessageView, render_message

logger = logging.getLogger(__name__)

SEND_FAILED = "Message failed to send. Tap to retry."
_RESPOND_FAILED = {
    OfferStatus.ACCEPTED: "Failed to accept offer. Please try again.",
    OfferStatus.DECLINED: "Failed to decline offer. Please try again.",
}


@dataclass(frozen=True, slots=True)
class SendOutcome:
    view: MessageView | None = None
    error: AppError | None = None
    draft: str = ""
    retryable: bool = False
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.view is not None


@dataclass(frozen=True, slots=True)
class RespondOutcome:
    view: MessageView | None = None
    checkout: CheckoutHandoff | None = None
    error: AppError | None = None
    user_message: str | None = None
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.discarded


def _sort_key(view: MessageView) -> tuple[datetime, uuid.UUID]:
    return view.message.created_at, view.message.id


def _is_stale(current: MessageView, incoming: Message) -> bool:
    """Messages only move forward: read_at gets set, offers get resolved."""
    if current.message.read_at is not None and incoming.read_at is None:
        return True
    if current.offer is not None and not current.offer.is_pending:
        offer = parse_offer(incoming.metadata)
        return offer is None or offer.is_pending
    return False


class ConversationView:
    def __init__(
        self,
        principal: Principal,
        partner_id: str,
        uow_factory: UoWFactory,
        *,
        presence: PresenceSession | None = None,
        page_size: int = 50,
    ) -> None:
        self._principal = principal
        self.viewer_id = principal.subject_id
        self.partner_id = partner_id
        self.pair = ConversationPair.of(self.viewer_id, partner_id)
        self._uow_factory = uow_factory
        self.presence = presence
        self._page_size = page_size

        self._by_id: dict[uuid.UUID, MessageView] = {}
        self._ordered: list[MessageView] = []
        self._draft_ids: dict[str, uuid.UUID] = {}
        self._alive = True
        self.scroll_version = 0

    # -- lifecycle -----------------------------------------------------

    @property
    def alive(self) -> bool:
        return self._alive

    async def open(self) -> bool:
        if self.presence is not None:
            await self.presence.start()
        return await self.load()

    async def close(self) -> None:
        self._alive = False
        if self.presence is not None:
            await self.presence.close()

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- state ---------------------------------------------------------

    @property
    def messages(self) -> list[MessageView]:
        return list(self._ordered)

    def contains(self, message_id: uuid.UUID) -> bool:
        return message_id in self._by_id

    @property
    def is_partner_typing(self) -> bool:
        return self.presence is not None and self.presence.is_typing

    def _request_scroll(self) -> None:
        self.scroll_version += 1

    def _upsert(self, message: Message) -> tuple[MessageView, bool, bool]:
        """Store a rendered copy. Return (view, changed, is_new)."""
        existing = self._by_id.get(message.id)
        if existing is not None and (
            existing.message == message or _is_stale(existing, message)
        ):
            return existing, False, False

        view = render_message(message, self.viewer_id)
        self._by_id[message.id] = view
        if existing is None:
            bisect.insort(self._ordered, view, key=_sort_key)
            return view, True, True

        idx = bisect.bisect_left(self._ordered, _sort_key(existing), key=_sort_key)
        self._ordered[idx] = view
        return view, True, False

    async def load(self) -> bool:
        """Read the whole history, oldest first. False if it could not be read."""
        if not self._alive:
            return False
        messages: list[Message] = []
        cursor: str | None = None
        try:
            async with self._uow_factory() as uow:
                while True:
                    page = await message_service.list_messages(
                        self._principal, self.partner_id, cursor, self._page_size, uow,
                    )
                    messages.extend(page.items)
                    if page.next_cursor is None:
                        break
                    cursor = page.next_cursor
        except Exception:
            logger.exception("Loading conversation %s failed", self.pair)
            return False
        if not self._alive:
            return False

        # Merge rather than replace: live deliveries may have landed mid-read.
        for message in messages:
            self._upsert(message)
        self._request_scroll()
        return True

    def apply_message(self, message: Message) -> MessageView | None:
        """Merge a delivered message. Returns the view to re-render, or None.

        Re-deliveries of an unchanged message return None; a changed copy of
        a known message replaces it in place; a new message scrolls to latest.
        """
        if not self._alive or message.pair != self.pair:
            return None
        view, changed, is_new = self._upsert(message)
        if is_new:
            self._request_scroll()
        return view if changed else None

    def apply_read_receipt(self, reader_id: str, read_at: datetime) -> list[MessageView]:
        """Mark our messages to ``reader_id`` as read after a bulk read.

        Only messages created by ``read_at`` are covered; later ones were not
        part of the read.
        """
        if not self._alive or reader_id != self.partner_id:
            return []
        changed: list[MessageView] = []
        for view in list(self._ordered):
            msg = view.message
            if msg.created_at > read_at:
                break
            if msg.sender_id == self.viewer_id and msg.read_at is None:
                new_view, _, _ = self._upsert(dataclasses.replace(msg, read_at=read_at))
                changed.append(new_view)
        return changed

    # -- actions -------------------------------------------------------

    async def _run_send(
        self,
        draft: str,
        action: Callable[[UnitOfWork, uuid.UUID], Awaitable[tuple[Message, bool]]],
    ) -> SendOutcome:
        if not self._alive:
            return SendOutcome(draft=draft, discarded=True)

        # One id per draft, so a retry after a lost ack cannot duplicate.
        client_msg_id = self._draft_ids.setdefault(draft, uuid.uuid4())
        try:
            async with self._uow_factory() as uow:
                message, _created = await action(uow, client_msg_id)
        except AppError as exc:
            if not self._alive:
                return SendOutcome(draft=draft, discarded=True)
            retryable = not isinstance(exc, (AuthorizationError, ValidationError))
            return SendOutcome(error=exc, draft=draft, retryable=retryable)
        except Exception:
            logger.exception("Send to %s failed", self.partner_id)
            if not self._alive:
                return SendOutcome(draft=draft, discarded=True)
            return SendOutcome(error=AppError(SEND_FAILED), draft=draft, retryable=True)

        if not self._alive:
            return SendOutcome(draft=draft, discarded=True)

        self._draft_ids.pop(draft, None)
        view, _, _ = self._upsert(message)
        self._request_scroll()
        return SendOutcome(view=view)

    async def send(self, body: str, metadata: dict[str, Any] | None = None) -> SendOutcome:
        async def _send(uow: UnitOfWork, client_msg_id: uuid.UUID) -> tuple[Message, bool]:
            dto = SendMessageDTO(
                recipient_id=self.partner_id,
                client_msg_id=client_msg_id,
                body=body,
                metadata=metadata,
            )
            return await message_service.send_message(self.viewer_id, dto, self._principal, uow)

        return await self._run_send(body, _send)

    async def send_offer(
        self,
        item_type: ItemType,
        item_id: str,
        overrides: OfferOverrides | None = None,
    ) -> SendOutcome:
        async def _send(uow: UnitOfWork, client_msg_id: uuid.UUID) -> tuple[Message, bool]:
            return await catalog_service.send_catalog_offer(
                self._principal, self.partner_id, item_type, item_id, client_msg_id, uow,
                overrides=overrides,
            )

        return await self._run_send(f"offer:{item_type}:{item_id}", _send)

    async def send_session_offer(self, proposal: SessionProposal) -> SendOutcome:
        async def _send(uow: UnitOfWork, client_msg_id: uuid.UUID) -> tuple[Message, bool]:
            return await session_offer_service.send_session_offer(
                self._principal, self.partner_id, proposal, client_msg_id, uow,
            )

        draft = f"session:{proposal.session_type}:{proposal.proposed_start.isoformat()}"
        return await self._run_send(draft, _send)

    async def respond(self, message_id: uuid.UUID, decision: OfferStatus) -> RespondOutcome:
        if not self._alive:
            return RespondOutcome(discarded=True)
        try:
            async with self._uow_factory() as uow:
                result = await offer_service.respond(message_id, self._principal, decision, uow)
        except ConflictError as exc:
            if not self._alive:
                return RespondOutcome(discarded=True)
            await self._refresh(message_id)
            return RespondOutcome(error=exc, user_message=exc.detail)
        except AppError as exc:
            if not self._alive:
                return RespondOutcome(discarded=True)
            return RespondOutcome(
                error=exc,
                user_message=_RESPOND_FAILED.get(decision, exc.detail),
            )
        except Exception:
            logger.exception("Responding to offer on %s failed", message_id)
            if not self._alive:
                return RespondOutcome(discarded=True)
            message = _RESPOND_FAILED.get(decision, SEND_FAILED)
            return RespondOutcome(error=AppError(message), user_message=message)

        if not self._alive:
            return RespondOutcome(discarded=True)
        view, _, _ = self._upsert(result.message)
        return RespondOutcome(view=view, checkout=result.checkout)

    async def _refresh(self, message_id: uuid.UUID) -> None:
        try:
            async with self._uow_factory() as uow:
                message = await uow.messages.get_by_id(message_id)
        except Exception:
            logger.warning("Refreshing message %s failed", message_id, exc_info=True)
            return
        if message is not None and self._alive:
            self.apply_message(message)

    async def mark_read(self) -> int:
        if not self._alive:
            return 0
        try:
            async with self._uow_factory() as uow:
                return await read_state_service.mark_conversation_read(
                    self._principal, self.partner_id, uow,
                )
        except Exception:
            logger.exception("Marking %s read failed", self.pair)
            return 0

    async def notify_typing(self) -> bool:
        if not self._alive or self.presence is None:
            return False
        return await self.presence.broadcast_typing()
