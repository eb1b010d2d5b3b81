from __future__ import annotations

from fastapi import APIRouter, Query

from coach_chat.api.deps import CurrentPrincipal, UoWDep
from coach_chat.api.v1.schemas.conversation import ConversationResponse, MarkReadResponse
from coach_chat.services import conversation_service, read_state_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[ConversationResponse]:
    convs = await conversation_service.list_conversations(principal, limit, uow)
    return [ConversationResponse.model_validate(c, from_attributes=True) for c in convs]


@router.post("/{partner_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    partner_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    count = await read_state_service.mark_conversation_read(principal, partner_id, uow)
    return MarkReadResponse(count=count)
