from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from coach_chat.api.deps import get_verifier
from coach_chat.application.dto.offer import OfferOverrides, SessionProposal
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import AppError
from coach_chat.application.ports.presence import PresenceTransport
from coach_chat.application.uow import UoWFactory
from coach_chat.config import settings
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus
from coach_chat.infrastructure.db.uow import open_uow
from coach_chat.infrastructure.ws.manager import ConnectionManager, WsClient
from coach_chat.infrastructure.ws.protocol import WsInbound, WsOutbound, message_view_payload
from coach_chat.presence.session import PresenceSession
from coach_chat.services import read_state_service
from coach_chat.view.controller import ConversationView

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


def get_uow_factory() -> UoWFactory:
    return open_uow


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    pkey = principal.principal_key
    client = await manager.connect(websocket, principal)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{pkey}",
    )
    try:
        await _read_loop(client)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", pkey)
    finally:
        heartbeat_task.cancel()
        await manager.disconnect(client)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _error(client: WsClient, code: str, **extra: Any) -> None:
    await client.send("error", {"code": code, **extra})


async def _read_loop(client: WsClient) -> None:
    while True:
        raw = await client.ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await _error(client, "invalid_payload")
            continue

        if msg.type == "ping":
            await client.send("pong", {})
            continue

        handler = _HANDLERS.get(msg.type)
        if handler is None:
            await _error(client, "unknown_type", type=msg.type)
            continue
        try:
            await handler(client, msg.data)
        except (KeyError, TypeError, ValueError) as exc:
            await _error(client, "invalid_data", type=msg.type, detail=str(exc))


def _partner_id(client: WsClient, data: dict[str, Any]) -> str:
    partner_id = str(data["partner_id"])
    if partner_id == client.principal.subject_id:
        raise ValueError("Cannot open a conversation with yourself")
    return partner_id


async def _open_view(client: WsClient, partner_id: str) -> ConversationView:
    presence = None
    transport: PresenceTransport | None = getattr(client.ws.app.state, "presence", None)
    if transport is not None:
        async def _on_typing(is_typing: bool) -> None:
            await client.send("typing", {"partner_id": partner_id, "is_typing": is_typing})

        presence = PresenceSession(
            transport,
            client.principal.subject_id,
            partner_id,
            debounce_seconds=settings.PRESENCE_DEBOUNCE_MS / 1000,
            typing_timeout_seconds=settings.PRESENCE_TYPING_TIMEOUT_MS / 1000,
            on_change=_on_typing,
        )
    view = ConversationView(
        client.principal,
        partner_id,
        get_uow_factory(),
        presence=presence,
        page_size=settings.MESSAGE_PAGE_SIZE,
    )
    client.views[partner_id] = view
    return view


async def _handle_open(client: WsClient, data: dict[str, Any]) -> None:
    partner_id = _partner_id(client, data)
    view = client.views.get(partner_id)
    if view is None:
        view = await _open_view(client, partner_id)
        loaded = await view.open()
    else:
        loaded = await view.load()
    if not loaded:
        await _error(client, "history_unavailable", partner_id=partner_id)

    await client.send(
        "conversation.snapshot",
        {
            "partner_id": partner_id,
            "messages": [message_view_payload(v) for v in view.messages],
            "is_partner_typing": view.is_partner_typing,
        },
    )
    await view.mark_read()


async def _handle_close(client: WsClient, data: dict[str, Any]) -> None:
    view = client.views.pop(str(data["partner_id"]), None)
    if view is not None:
        await view.close()


def _require_view(client: WsClient, data: dict[str, Any]) -> ConversationView | None:
    return client.views.get(str(data["partner_id"]))


async def _handle_typing(client: WsClient, data: dict[str, Any]) -> None:
    view = _require_view(client, data)
    if view is not None:
        await view.notify_typing()


def _session_proposal(raw: dict[str, Any]) -> SessionProposal:
    try:
        price = Decimal(str(raw.get("price", 0)))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid price: {raw.get('price')!r}") from exc
    return SessionProposal(
        session_type=str(raw["session_type"]),
        proposed_start=datetime.fromisoformat(str(raw["proposed_start"])),
        duration_minutes=int(raw["duration_minutes"]),
        price=price,
        currency=str(raw.get("currency") or "GBP"),
        is_online=bool(raw.get("is_online", True)),
        location=raw.get("location"),
        notes=raw.get("notes"),
    )


async def _handle_send(client: WsClient, data: dict[str, Any]) -> None:
    view = _require_view(client, data)
    if view is None:
        await _error(client, "conversation_not_open", partner_id=data["partner_id"])
        return

    offer = data.get("offer")
    session_offer = data.get("session_offer")
    if session_offer is not None:
        outcome = await view.send_session_offer(_session_proposal(session_offer))
    elif offer is not None:
        overrides = OfferOverrides(**offer["overrides"]) if offer.get("overrides") else None
        outcome = await view.send_offer(
            ItemType(offer["item_type"]), str(offer["item_id"]), overrides,
        )
    else:
        outcome = await view.send(str(data.get("body") or ""), data.get("metadata"))

    if outcome.discarded:
        return
    if outcome.ok:
        assert outcome.view is not None
        await client.send(
            "message.created",
            {"partner_id": view.partner_id, "message": message_view_payload(outcome.view)},
        )
        return
    await client.send(
        "send.failed",
        {
            "partner_id": view.partner_id,
            "draft": outcome.draft,
            "retryable": outcome.retryable,
            "detail": outcome.error.detail if outcome.error else None,
        },
    )


async def _handle_mark_read(client: WsClient, data: dict[str, Any]) -> None:
    message_id = data.get("message_id")
    if message_id is None:
        view = _require_view(client, data)
        if view is not None:
            await view.mark_read()
        return

    try:
        async with get_uow_factory()() as uow:
            await read_state_service.mark_read(UUID(str(message_id)), client.principal, uow)
    except AppError as exc:
        await _error(client, "mark_read_failed", message_id=str(message_id), detail=exc.detail)


async def _handle_respond(client: WsClient, data: dict[str, Any]) -> None:
    view = _require_view(client, data)
    message_id = UUID(str(data["message_id"]))
    decision = OfferStatus(data["decision"])
    if view is None:
        await _error(client, "conversation_not_open", partner_id=data["partner_id"])
        return

    outcome = await view.respond(message_id, decision)
    if outcome.discarded:
        return
    if not outcome.ok:
        await client.send(
            "offer.failed",
            {
                "partner_id": view.partner_id,
                "message_id": str(message_id),
                "detail": outcome.user_message,
            },
        )
        return

    if outcome.view is not None:
        await client.send(
            "message.updated",
            {"partner_id": view.partner_id, "message": message_view_payload(outcome.view)},
        )
    if outcome.checkout is not None:
        await client.send("checkout.redirect", outcome.checkout.to_payload())


_HANDLERS: dict[str, Callable[[WsClient, dict[str, Any]], Awaitable[None]]] = {
    "conversation.open": _handle_open,
    "conversation.close": _handle_close,
    "typing": _handle_typing,
    "message.send": _handle_send,
    "mark_read": _handle_mark_read,
    "offer.respond": _handle_respond,
}
