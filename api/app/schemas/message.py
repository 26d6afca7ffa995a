# api/app/schemas/message.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: uuid.UUID
    content: str
    sender: str
    timestamp: str | None = None
    type: str = "text"

    class Config:
        from_attributes = True


class ConversationStatsResponse(BaseModel):
    total_messages: int
    user_messages: int
    buddy_messages: int
    last_message: MessageResponse | None = None
    created: datetime | None = None
    last_updated: datetime | None = None
    has_compacted_data: bool
