# services/observability.py
"""
Buddy audit events.

Events ride on the caller's session, so an event is committed exactly when
the change it describes is committed.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.event import Event

logger = logging.getLogger(__name__)

BUDDY_CREATED = "buddy_created"
BUDDY_REMOVED = "buddy_removed"
BUDDY_SETTINGS_UPDATED = "buddy_settings_updated"
CONVERSATION_COMPACTED = "conversation_compacted"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


async def log_event(
    db: AsyncSession,
    event_type: str,
    buddy_id: uuid.UUID | None = None,
    *,
    source: str,
    level: str = "info",
    message: str | None = None,
    **details,
) -> Event:
    event = Event(
        event_type=event_type,
        level=level,
        source=source,
        buddy_id=buddy_id,
        message=message,
        details=details,
    )
    db.add(event)
    await db.flush()
    logger.log(
        _LEVELS.get(level, logging.INFO),
        "%s buddy=%s %s",
        event_type,
        buddy_id,
        details,
    )
    return event


async def list_events(
    db: AsyncSession,
    buddy_id: uuid.UUID | None = None,
    event_type: str | None = None,
    limit: int = 50,
) -> list[Event]:
    """Newest-first events, optionally for one buddy and/or one type."""
    stmt = select(Event).order_by(Event.created_at.desc()).limit(limit)
    if buddy_id is not None:
        stmt = stmt.where(Event.buddy_id == buddy_id)
    if event_type is not None:
        stmt = stmt.where(Event.event_type == event_type)
    result = await db.execute(stmt)
    return list(result.scalars().all())
