from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    client_msg_id: UUID
    body: str | None = Field(None, max_length=10_000)
    metadata: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    id: UUID
    sender_id: str
    recipient_id: str
    body: str | None
    metadata: dict[str, Any] | None
    client_msg_id: UUID
    created_at: datetime
    read_at: datetime | None

    model_config = {"from_attributes": True}
