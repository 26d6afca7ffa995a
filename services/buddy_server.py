# services/buddy_server.py
"""
BuddyServer: owns buddy records and runs the send-message pipeline.

    user text → store.append → prompt → orchestrator.generate
              → friendship score → store.append(reply) → buddy stats
              → memory write (background)

Only ValidationError and StorageError leave this module. Backend failures are
absorbed by the orchestrator and come back as fallback replies.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import uuid
from collections import defaultdict
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ai.personality import PersonalityProfile, build_personality
from ai.prompt_builder import DEFAULT_HISTORY_TURNS, build_generation_request
from api.app.schemas.buddy import BuddyCreate, BuddySettingsUpdate
from db.session import build_session_factory, init_models
from models.base import utcnow
from models.buddy import Buddy, default_settings, default_stats
from services.chat_message import ChatMessage
from services.conversation_store import ConversationStore
from services.errors import BuddyNotFound, StorageError, ValidationError
from services.friendship import score_exchange
from services.memory_service import (
    MemoryRecorder,
    delete_memories,
    detect_mood,
    extract_topics,
    list_memories,
)
from services.observability import (
    BUDDY_CREATED,
    BUDDY_REMOVED,
    BUDDY_SETTINGS_UPDATED,
    list_events,
    log_event,
)
from services.orchestrator import ProviderOrchestrator, ProviderState, build_backends

logger = logging.getLogger(__name__)

MAX_FAVORITE_TOPICS = 5
PERSONALITY_FIELDS = ("personality_type", "chattiness", "intelligence", "empathy")


def _validate(schema, data: Any):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(str(exc)) from exc


def _merge(base: dict, patch: dict) -> dict:
    """Recursive dict merge; returns a new dict."""
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _profile_for(buddy: Buddy) -> PersonalityProfile:
    if buddy.personality:
        try:
            return PersonalityProfile.from_dict(buddy.personality)
        except ValidationError:
            logger.warning("Stored personality for buddy %s is invalid; re-rendering", buddy.id)
    return build_personality(buddy.personality_type, buddy.chattiness, buddy.intelligence, buddy.empathy)


class BuddyServer:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: ProviderOrchestrator,
        store: ConversationStore | None = None,
        recorder: MemoryRecorder | None = None,
        engine: AsyncEngine | None = None,
        history_turns: int = DEFAULT_HISTORY_TURNS,
    ) -> None:
        self._session_factory = session_factory
        self.orchestrator = orchestrator
        self.store = store or ConversationStore(session_factory)
        self.recorder = recorder or MemoryRecorder(session_factory)
        self._engine = engine
        self.history_turns = history_turns
        self.provider_state = ProviderState()
        self._locks: defaultdict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(cls, settings, engine: AsyncEngine) -> BuddyServer:
        session_factory = build_session_factory(engine)
        orchestrator = ProviderOrchestrator(
            build_backends(settings),
            probe_timeout=settings.probe_timeout,
            generation_timeout=settings.generation_timeout,
            max_tokens=settings.max_tokens,
        )
        store = ConversationStore(
            session_factory,
            compact_threshold=settings.compact_threshold,
            compact_retain=settings.compact_retain,
        )
        return cls(
            session_factory,
            orchestrator,
            store=store,
            engine=engine,
            history_turns=settings.history_turns,
        )

    # ─────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────

    async def start(self) -> ProviderState:
        if self._engine is not None:
            await init_models(self._engine)
        return await self.reprobe()

    async def reprobe(self) -> ProviderState:
        self.provider_state = await self.orchestrator.initialize()
        return self.provider_state

    async def shutdown(self) -> None:
        await self.recorder.drain()
        if self._engine is not None:
            await self._engine.dispose()
        logger.info("Buddy server stopped")

    # ─────────────────────────────────────────────
    # Buddies
    # ─────────────────────────────────────────────

    async def add_buddy(self, profile: BuddyCreate | dict) -> Buddy:
        data = _validate(BuddyCreate, profile)
        personality = build_personality(
            data.personality_type, data.chattiness, data.intelligence, data.empathy
        )

        buddy = Buddy(
            id=uuid.uuid4(),
            name=data.name,
            personality_type=personality.personality_type.value,
            avatar=data.avatar,
            chattiness=personality.chattiness,
            intelligence=personality.intelligence,
            empathy=personality.empathy,
            personality=personality.to_dict(),
            status="online",
            friendship_score=0,
            stats=default_stats(),
            settings=default_settings(),
        )
        try:
            async with self._session_factory() as db:
                db.add(buddy)
                await db.flush()
                await log_event(db, BUDDY_CREATED, buddy.id, source="buddy_server",
                                personality_type=buddy.personality_type)
                await db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create buddy {data.name!r}") from exc

        await self.store.initialize(buddy.id)
        logger.info("Created buddy %s (%s, %s)", buddy.id, buddy.name, buddy.personality_type)
        return buddy

    async def get_buddies(self) -> list[Buddy]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Buddy).order_by(Buddy.created_at.desc()))
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list buddies") from exc

    async def get_buddy(self, buddy_id: uuid.UUID) -> Buddy | None:
        try:
            async with self._session_factory() as db:
                return await db.get(Buddy, buddy_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load buddy {buddy_id}") from exc

    @asynccontextmanager
    async def _buddy_lock(self, buddy_id: uuid.UUID):
        try:
            async with self._locks[buddy_id]:
                yield
        except BuddyNotFound:
            self._drop_lock(buddy_id)
            raise

    def _drop_lock(self, buddy_id: uuid.UUID) -> None:
        lock = self._locks.get(buddy_id)
        if lock is not None and not lock.locked():
            del self._locks[buddy_id]

    async def _require_buddy(self, buddy_id: uuid.UUID) -> Buddy:
        buddy = await self.get_buddy(buddy_id)
        if buddy is None:
            raise BuddyNotFound(buddy_id)
        return buddy

    async def remove_buddy(self, buddy_id: uuid.UUID) -> None:
        async with self._buddy_lock(buddy_id):
            await self._require_buddy(buddy_id)
            # memory writes still in flight would otherwise land after the delete
            await self.recorder.drain()
            await self.store.delete(buddy_id)
            try:
                async with self._session_factory() as db:
                    await db.execute(delete(Buddy).where(Buddy.id == buddy_id))
                    await delete_memories(db, buddy_id)
                    await log_event(db, BUDDY_REMOVED, buddy_id, source="buddy_server")
                    await db.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Failed to remove buddy {buddy_id}") from exc
        self._drop_lock(buddy_id)
        logger.info("Removed buddy %s", buddy_id)

    # ─────────────────────────────────────────────
    # Messaging
    # ─────────────────────────────────────────────

    async def send_message(self, buddy_id: uuid.UUID, text: str) -> ChatMessage:
        """Record the user's message, generate a reply, and record that too."""
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Message content must not be empty")

        async with self._buddy_lock(buddy_id):
            buddy = await self._require_buddy(buddy_id)
            personality = _profile_for(buddy)

            await self.store.append(buddy_id, ChatMessage.from_user(text))
            recent = await self.store.history(buddy_id, self.history_turns + 1)
            summary = await self.store.summary(buddy_id)

            request = build_generation_request(
                buddy,
                personality,
                recent[:-1],
                text,
                summary=summary,
                history_turns=self.history_turns,
            )
            result = await self.orchestrator.generate(self.provider_state, request)
            if result.used_fallback:
                logger.info("Buddy %s replied from fallback table", buddy_id)

            new_score = score_exchange(buddy.friendship_score, text)
            reply = await self.store.append(buddy_id, ChatMessage.from_buddy(result.text))
            first_exchange = await self.store.message_count(buddy_id) <= 2

            await self._record_exchange(buddy, text, new_score, first_exchange)

            if (buddy.settings or {}).get("learning_enabled", True):
                self.recorder.record(buddy_id, text, reply.content, new_score)

            return reply

    async def _record_exchange(self, buddy: Buddy, text: str, new_score: int, first_exchange: bool) -> None:
        stats = dict(buddy.stats or default_stats())
        stats["messages_exchanged"] = stats.get("messages_exchanged", 0) + 2
        if first_exchange:
            stats["conversations_started"] = stats.get("conversations_started", 0) + 1
        stats["mood"] = detect_mood(text)
        favorites = list(stats.get("favorite_topics") or [])
        for topic in extract_topics(text):
            if topic in favorites:
                favorites.remove(topic)
            favorites.append(topic)
        stats["favorite_topics"] = favorites[-MAX_FAVORITE_TOPICS:]

        try:
            async with self._session_factory() as db:
                row = await db.get(Buddy, buddy.id)
                if row is None:
                    raise BuddyNotFound(buddy.id)
                row.friendship_score = new_score
                row.stats = stats
                row.last_interaction = utcnow()
                await db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update buddy {buddy.id}") from exc

    async def get_conversation(self, buddy_id: uuid.UUID) -> list[ChatMessage]:
        await self._require_buddy(buddy_id)
        return await self.store.history(buddy_id)

    async def get_conversation_stats(self, buddy_id: uuid.UUID) -> dict:
        await self._require_buddy(buddy_id)
        return await self.store.stats(buddy_id)

    async def export_conversation(self, buddy_id: uuid.UUID, fmt: str = "json") -> dict | str:
        await self._require_buddy(buddy_id)
        return await self.store.export(buddy_id, fmt)

    async def get_memories(self, buddy_id: uuid.UUID, limit: int | None = None) -> list:
        await self._require_buddy(buddy_id)
        if limit is not None and limit < 0:
            raise ValidationError("limit must not be negative")
        try:
            async with self._session_factory() as db:
                return await list_memories(db, buddy_id, limit)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load memories for buddy {buddy_id}") from exc

    async def get_events(self, buddy_id: uuid.UUID, limit: int = 50) -> list:
        """Audit events for a buddy, newest first. Available after removal."""
        try:
            async with self._session_factory() as db:
                return await list_events(db, buddy_id=buddy_id, limit=limit)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load events for buddy {buddy_id}") from exc

    # ─────────────────────────────────────────────
    # Settings
    # ─────────────────────────────────────────────

    async def get_buddy_settings(self, buddy_id: uuid.UUID) -> dict:
        buddy = await self._require_buddy(buddy_id)
        return {
            "name": buddy.name,
            "avatar": buddy.avatar,
            "status": buddy.status,
            "personality_type": buddy.personality_type,
            "chattiness": buddy.chattiness,
            "intelligence": buddy.intelligence,
            "empathy": buddy.empathy,
            "settings": dict(buddy.settings or {}),
        }

    async def update_buddy_settings(self, buddy_id: uuid.UUID, patch: BuddySettingsUpdate | dict) -> Buddy:
        """Merge-write profile fields and settings. Dial or type changes re-render the personality."""
        update = _validate(BuddySettingsUpdate, patch).model_dump(exclude_unset=True)

        async with self._buddy_lock(buddy_id):
            buddy = await self._require_buddy(buddy_id)

            personality = None
            if any(update.get(f) is not None for f in PERSONALITY_FIELDS):
                personality = build_personality(
                    update.get("personality_type") or buddy.personality_type,
                    update["chattiness"] if update.get("chattiness") is not None else buddy.chattiness,
                    update["intelligence"] if update.get("intelligence") is not None else buddy.intelligence,
                    update["empathy"] if update.get("empathy") is not None else buddy.empathy,
                )

            try:
                async with self._session_factory() as db:
                    row = await db.get(Buddy, buddy_id)
                    if row is None:
                        raise BuddyNotFound(buddy_id)
                    for field in ("name", "avatar", "status"):
                        if update.get(field) is not None:
                            setattr(row, field, update[field])
                    if update.get("settings") is not None:
                        row.settings = _merge(row.settings or default_settings(), update["settings"])
                    if personality is not None:
                        row.personality_type = personality.personality_type.value
                        row.chattiness = personality.chattiness
                        row.intelligence = personality.intelligence
                        row.empathy = personality.empathy
                        row.personality = personality.to_dict()

                    await db.flush()
                    await log_event(db, BUDDY_SETTINGS_UPDATED, buddy_id, source="buddy_server",
                                    fields=sorted(update.keys()))
                    await db.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Failed to update settings for buddy {buddy_id}") from exc

        return row
