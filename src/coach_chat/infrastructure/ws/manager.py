"""In-process WebSocket connection manager.

Each connection keeps the conversation views it has opened. Fan-out events
are merged into those views so that the client only receives messages whose
rendering actually changed; conversations that are not open get a lighter
``conversation.updated`` nudge for the inbox.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from coach_chat.application.dto.principal import Principal
from coach_chat.domain.events.message_created import (
    MessageCreated,
    message_from_snapshot,
    message_snapshot,
)
from coach_chat.domain.events.message_updated import MessageUpdated
from coach_chat.domain.events.messages_read import MessagesRead
from coach_chat.domain.entities.message import Message
from coach_chat.infrastructure.ws.protocol import WsOutbound, message_view_payload
from coach_chat.view.controller import ConversationView

logger = logging.getLogger(__name__)


class WsClient:
    """One accepted WebSocket and the conversations it has open."""

    def __init__(self, ws: WebSocket, principal: Principal) -> None:
        self.ws = ws
        self.principal = principal
        self.views: dict[str, ConversationView] = {}

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        await self.ws.send_text(WsOutbound(type=event_type, data=data).model_dump_json())

    async def close_views(self) -> None:
        views, self.views = list(self.views.values()), {}
        for view in views:
            await view.close()


class ConnectionManager:
    """Tracks WebSocket connections per principal."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WsClient]] = {}

    async def connect(self, ws: WebSocket, principal: Principal) -> WsClient:
        await ws.accept()
        client = WsClient(ws, principal)
        self._connections.setdefault(principal.principal_key, set()).add(client)
        logger.debug("WS connected: %s (total=%d)", principal.principal_key, len(self._connections))
        return client

    async def disconnect(self, client: WsClient) -> None:
        pkey = client.principal.principal_key
        conns = self._connections.get(pkey)
        if conns:
            conns.discard(client)
            if not conns:
                del self._connections[pkey]
        await client.close_views()
        logger.debug("WS disconnected: %s", pkey)

    def clients_for(self, principal_key: str) -> list[WsClient]:
        return list(self._connections.get(principal_key, ()))

    async def _deliver(self, client: WsClient, event_type: str, data: dict[str, Any]) -> None:
        try:
            await client.send(event_type, data)
        except Exception:
            logger.debug("Dropping dead WS for %s", client.principal.principal_key, exc_info=True)
            await self.disconnect(client)

    async def send_to_principal(
        self,
        principal_key: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send a WS message to every connection of a principal."""
        for client in self.clients_for(principal_key):
            await self._deliver(client, event_type, data)

    async def dispatch(self, event_type: str, data: dict[str, Any]) -> None:
        """Route one fan-out event to the local connections it concerns."""
        if event_type in (MessageCreated.event_type, MessageUpdated.event_type):
            await self._on_message(message_from_snapshot(data["message"]))
        elif event_type == MessagesRead.event_type:
            await self._on_messages_read(
                data["reader_id"],
                data["partner_id"],
                datetime.fromisoformat(data["read_at"]),
            )

    async def _on_message(self, message: Message) -> None:
        for subject_id in (message.sender_id, message.recipient_id):
            partner_id = message.pair.other(subject_id)
            for client in self.clients_for(subject_id):
                view = client.views.get(partner_id)
                if view is None:
                    await self._deliver(
                        client,
                        "conversation.updated",
                        {"partner_id": partner_id, "message": message_snapshot(message)},
                    )
                    continue
                known = view.contains(message.id)
                rendered = view.apply_message(message)
                if rendered is not None:
                    await self._deliver(
                        client,
                        "message.updated" if known else "message.created",
                        {"partner_id": partner_id, "message": message_view_payload(rendered)},
                    )

    async def _on_messages_read(self, reader_id: str, partner_id: str, read_at: datetime) -> None:
        # The partner sees their messages flip to read.
        for client in self.clients_for(partner_id):
            view = client.views.get(reader_id)
            if view is None:
                continue
            for rendered in view.apply_read_receipt(reader_id, read_at):
                await self._deliver(
                    client,
                    "message.updated",
                    {"partner_id": reader_id, "message": message_view_payload(rendered)},
                )
        # The reader's other devices clear their unread badge.
        for client in self.clients_for(reader_id):
            await self._deliver(
                client,
                "conversation.updated",
                {"partner_id": partner_id, "unread_count": 0},
            )
