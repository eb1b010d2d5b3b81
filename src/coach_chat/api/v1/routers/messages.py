from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from coach_chat.api.deps import CurrentPrincipal, UoWDep
from coach_chat.api.v1.schemas.common import PaginatedResponse
from coach_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from coach_chat.application.dto.message import SendMessageDTO
from coach_chat.config import settings
from coach_chat.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get(
    "/conversations/{partner_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    partner_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(settings.MESSAGE_PAGE_SIZE, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    page = await message_service.list_messages(principal, partner_id, cursor, limit, uow)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m, from_attributes=True) for m in page.items],
        next_cursor=page.next_cursor,
    )


@router.post(
    "/conversations/{partner_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    partner_id: str,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    dto = SendMessageDTO(
        recipient_id=partner_id,
        client_msg_id=body.client_msg_id,
        body=body.body,
        metadata=body.metadata,
    )
    msg, _created = await message_service.send_message(principal.subject_id, dto, principal, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/messages/{message_id}/read", status_code=204)
async def mark_message_read(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await read_state_service.mark_read(message_id, principal, uow)
    return Response(status_code=204)
