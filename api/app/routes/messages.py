# api/app/routes/messages.py
from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from api.app.dependencies import get_server, parse_buddy_id
from api.app.schemas.message import (
    ConversationStatsResponse,
    MessageResponse,
    SendMessageRequest,
)
from services.buddy_server import BuddyServer

router = APIRouter(tags=["messages"])


@router.post("/buddies/{buddy_id}/messages", response_model=MessageResponse)
async def send_message(
    body: SendMessageRequest,
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    reply = await server.send_message(buddy_id, body.content)
    return MessageResponse.model_validate(reply)


@router.get("/buddies/{buddy_id}/conversation", response_model=list[MessageResponse])
async def get_conversation(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    return [MessageResponse.model_validate(m) for m in await server.get_conversation(buddy_id)]


@router.get("/buddies/{buddy_id}/stats", response_model=ConversationStatsResponse)
async def get_conversation_stats(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    return ConversationStatsResponse.model_validate(await server.get_conversation_stats(buddy_id))


@router.get("/buddies/{buddy_id}/export")
async def export_conversation(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    fmt: Literal["json", "txt"] = Query("json"),
    server: BuddyServer = Depends(get_server),
):
    exported = await server.export_conversation(buddy_id, fmt)
    if fmt == "txt":
        return PlainTextResponse(exported)
    return exported
