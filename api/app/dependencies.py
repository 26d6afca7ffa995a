# api/app/dependencies.py
from __future__ import annotations

import uuid

from fastapi import HTTPException, Request, status

from services.buddy_server import BuddyServer


def get_server(request: Request) -> BuddyServer:
    """The BuddyServer created by the app lifespan."""
    server = getattr(request.app.state, "server", None)
    if server is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Buddy server not started",
        )
    return server


def parse_buddy_id(buddy_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(buddy_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Buddy not found: {buddy_id}",
        ) from None
