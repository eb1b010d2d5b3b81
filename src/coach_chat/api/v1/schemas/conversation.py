from __future__ import annotations

from pydantic import BaseModel

from coach_chat.api.v1.schemas.message import MessageResponse


class ProfileResponse(BaseModel):
    id: str
    display_name: str
    avatar_url: str | None
    role: str

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    partner_id: str
    partner: ProfileResponse | None
    last_message: MessageResponse
    unread_count: int

    model_config = {"from_attributes": True}


class MarkReadResponse(BaseModel):
    count: int
