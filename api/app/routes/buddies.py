# api/app/routes/buddies.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from api.app.dependencies import get_server, parse_buddy_id
from api.app.schemas.buddy import (
    BuddyCreate,
    BuddyResponse,
    BuddySettingsResponse,
    BuddySettingsUpdate,
    EventResponse,
)
from services.buddy_server import BuddyServer
from services.errors import BuddyNotFound

router = APIRouter(tags=["buddies"])


@router.post("/buddies", response_model=BuddyResponse, status_code=status.HTTP_201_CREATED)
async def create_buddy(
    body: BuddyCreate,
    server: BuddyServer = Depends(get_server),
):
    buddy = await server.add_buddy(body)
    return BuddyResponse.model_validate(buddy)


@router.get("/buddies", response_model=list[BuddyResponse])
async def list_buddies(server: BuddyServer = Depends(get_server)):
    return [BuddyResponse.model_validate(b) for b in await server.get_buddies()]


@router.get("/buddies/{buddy_id}", response_model=BuddyResponse)
async def get_buddy(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    buddy = await server.get_buddy(buddy_id)
    if buddy is None:
        raise BuddyNotFound(buddy_id)
    return BuddyResponse.model_validate(buddy)


@router.delete("/buddies/{buddy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_buddy(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    await server.remove_buddy(buddy_id)


@router.get("/buddies/{buddy_id}/settings", response_model=BuddySettingsResponse)
async def get_buddy_settings(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    return BuddySettingsResponse.model_validate(await server.get_buddy_settings(buddy_id))


@router.patch("/buddies/{buddy_id}/settings", response_model=BuddySettingsResponse)
async def update_buddy_settings(
    body: BuddySettingsUpdate,
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    server: BuddyServer = Depends(get_server),
):
    buddy = await server.update_buddy_settings(buddy_id, body)
    return BuddySettingsResponse.model_validate(buddy)


@router.get("/buddies/{buddy_id}/events", response_model=list[EventResponse])
async def list_buddy_events(
    buddy_id: uuid.UUID = Depends(parse_buddy_id),
    limit: int = Query(50, ge=1, le=500),
    server: BuddyServer = Depends(get_server),
):
    return [EventResponse.model_validate(e) for e in await server.get_events(buddy_id, limit)]
