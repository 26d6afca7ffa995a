# tests/test_memory_service.py
"""
Tests for interaction memory tagging and background recording.
"""
from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from services.memory_service import (
    MemoryRecorder,
    delete_memories,
    detect_mood,
    extract_topics,
    list_memories,
    store_memory,
)


@pytest.mark.parametrize("text,mood", [
    ("I'm so happy, this is awesome", "positive"),
    ("what a terrible, awful day", "negative"),
    ("I feel great but also sad", "neutral"),
    ("just a regular tuesday", "neutral"),
])
def test_detect_mood(text, mood):
    assert detect_mood(text) == mood


def test_extract_topics():
    assert extract_topics("my friend and I cooked a meal") == ["food", "relationships"]
    assert extract_topics("nothing here") == []


@pytest.mark.asyncio
async def test_store_and_list_memories(session_factory):
    buddy_id = uuid.uuid4()
    async with session_factory() as db:
        await store_memory(db, buddy_id, "I love my job", "That's great!", 3)
        await store_memory(db, buddy_id, "bad meeting today", "Oh no!", 5)
        await store_memory(db, uuid.uuid4(), "other buddy", "hi", 1)
        await db.commit()

    async with session_factory() as db:
        memories = await list_memories(db, buddy_id)
        latest = await list_memories(db, buddy_id, limit=1)

    assert [m.user_message for m in memories] == ["I love my job", "bad meeting today"]
    assert memories[0].mood == "positive"
    assert "work" in memories[0].topics
    assert memories[1].friendship_score == 5
    assert [m.user_message for m in latest] == ["bad meeting today"]


@pytest.mark.asyncio
async def test_delete_memories(session_factory):
    buddy_id = uuid.uuid4()
    async with session_factory() as db:
        await store_memory(db, buddy_id, "hi", "hello", 1)
        await delete_memories(db, buddy_id)
        await db.commit()
        assert await list_memories(db, buddy_id) == []


@pytest.mark.asyncio
async def test_recorder_writes_in_background(session_factory):
    recorder = MemoryRecorder(session_factory)
    buddy_id = uuid.uuid4()

    recorder.record(buddy_id, "we went on a trip", "Sounds fun!", 2)
    await recorder.drain()

    assert recorder.pending == 0
    async with session_factory() as db:
        memories = await list_memories(db, buddy_id)
    assert len(memories) == 1
    assert memories[0].buddy_response == "Sounds fun!"


@pytest.mark.asyncio
async def test_recorder_swallows_write_errors(session_factory):
    recorder = MemoryRecorder(session_factory)
    with patch("services.memory_service.store_memory", new_callable=AsyncMock, side_effect=Exception("disk full")):
        task = recorder.record(uuid.uuid4(), "hi", "hello", 1)
        await recorder.drain()
    assert task.exception() is None
