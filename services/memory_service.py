# services/memory_service.py
"""
Memory service: tag and store raw interaction memories.

Memories are a write-only side channel for later analysis. The recorder
schedules each write as a detached task so the reply is never delayed or
failed by it.
"""
from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ai.keywords import MEMORY_TOPICS, NEGATIVE_WORDS, POSITIVE_WORDS, match_topics
from models.memory import Memory

logger = logging.getLogger(__name__)


def detect_mood(text: str) -> str:
    lowered = text.lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in lowered)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lowered)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def extract_topics(text: str) -> list[str]:
    return match_topics(text, MEMORY_TOPICS)


async def store_memory(
    db: AsyncSession,
    buddy_id: uuid.UUID,
    user_message: str,
    buddy_response: str,
    friendship_score: int,
) -> Memory:
    """Append one interaction memory for a buddy."""
    memory = Memory(
        buddy_id=buddy_id,
        user_message=user_message,
        buddy_response=buddy_response,
        mood=detect_mood(user_message),
        topics=extract_topics(user_message),
        friendship_score=friendship_score,
    )
    db.add(memory)
    await db.flush()
    return memory


async def list_memories(
    db: AsyncSession,
    buddy_id: uuid.UUID,
    limit: int | None = None,
) -> list[Memory]:
    """Oldest-first memories for a buddy, optionally only the latest `limit`."""
    stmt = (
        select(Memory)
        .where(Memory.buddy_id == buddy_id)
        .order_by(Memory.created_at.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(reversed(result.scalars().all()))


async def delete_memories(db: AsyncSession, buddy_id: uuid.UUID) -> None:
    await db.execute(delete(Memory).where(Memory.buddy_id == buddy_id))


class MemoryRecorder:
    """Fire-and-forget memory writes with tracked tasks."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._tasks: set[asyncio.Task] = set()

    def record(
        self,
        buddy_id: uuid.UUID,
        user_message: str,
        buddy_response: str,
        friendship_score: int,
    ) -> asyncio.Task:
        task = asyncio.create_task(
            self._write(buddy_id, user_message, buddy_response, friendship_score)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write(
        self,
        buddy_id: uuid.UUID,
        user_message: str,
        buddy_response: str,
        friendship_score: int,
    ) -> None:
        try:
            async with self._session_factory() as db:
                await store_memory(db, buddy_id, user_message, buddy_response, friendship_score)
                await db.commit()
        except Exception as exc:
            logger.warning("Memory write skipped for buddy %s: %s", buddy_id, exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled write to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
