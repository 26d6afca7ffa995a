# api/app/routes/health.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.app.dependencies import get_server
from services.buddy_server import BuddyServer

router = APIRouter(tags=["health"])
providers_router = APIRouter(tags=["providers"])


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "buddy-companion"}


@providers_router.get("/providers")
async def provider_status(server: BuddyServer = Depends(get_server)):
    return server.provider_state.to_dict()


@providers_router.post("/providers/reprobe")
async def reprobe_providers(server: BuddyServer = Depends(get_server)):
    state = await server.reprobe()
    return state.to_dict()
