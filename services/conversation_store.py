# services/conversation_store.py
"""
Per-buddy conversation log: append-only live window, compaction into a
chained summary, and durable persistence.

Every operation on a buddy's conversation runs under that buddy's asyncio
lock, so appends and compaction never interleave. The in-memory cache is only
updated after the database commit succeeds.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.base import as_utc, utcnow
from models.conversation import Conversation
from models.message import Message
from services.chat_message import SENDER_USER, SENDERS, ChatMessage
from services.compaction import CompactedSummary, merge_summaries, summarize_messages
from services.errors import CompactionError, StorageError, ValidationError
from services.observability import CONVERSATION_COMPACTED, log_event

logger = logging.getLogger(__name__)

DEFAULT_COMPACT_THRESHOLD = 500
DEFAULT_COMPACT_RETAIN = 200


@dataclass
class ConversationState:
    buddy_id: uuid.UUID
    conversation_id: uuid.UUID
    messages: list[ChatMessage] = field(default_factory=list)
    message_count: int = 0
    compacted_summary: CompactedSummary | None = None
    created: datetime | None = None
    last_updated: datetime | None = None
    persisted: bool = False

    @property
    def first_seq(self) -> int:
        """Sequence number of the oldest message still in the live window."""
        return self.message_count - len(self.messages)


class ConversationStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        compact_threshold: int = DEFAULT_COMPACT_THRESHOLD,
        compact_retain: int = DEFAULT_COMPACT_RETAIN,
        summarizer: Callable[[list[ChatMessage]], CompactedSummary] = summarize_messages,
    ) -> None:
        if compact_retain < 0 or compact_retain >= compact_threshold:
            raise ValueError("compact_retain must be in [0, compact_threshold)")
        self._session_factory = session_factory
        self.compact_threshold = compact_threshold
        self.compact_retain = compact_retain
        self._summarizer = summarizer
        self._cache: dict[uuid.UUID, ConversationState] = {}
        self._locks: defaultdict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ─────────────────────────────────────────────
    # Public operations
    # ─────────────────────────────────────────────

    async def initialize(self, buddy_id: uuid.UUID) -> None:
        """Create the empty conversation record for a new buddy."""
        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)
            if state.persisted:
                return
            now = utcnow()
            try:
                async with self._session_factory() as db:
                    db.add(self._new_row(state, now, message_count=0))
                    await db.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Failed to create conversation for buddy {buddy_id}") from exc
            state.created = state.last_updated = now
            state.persisted = True

    async def append(self, buddy_id: uuid.UUID, message: ChatMessage) -> ChatMessage:
        """Persist a message, add it to the live window, then check compaction."""
        if not message.content or not message.content.strip():
            raise ValidationError("Message content must not be empty")
        if message.sender not in SENDERS:
            raise ValidationError(f"Unknown sender: {message.sender!r}")

        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)
            stamped = message.stamped()
            seq = state.message_count
            now = utcnow()

            try:
                async with self._session_factory() as db:
                    if state.persisted:
                        await db.execute(
                            update(Conversation)
                            .where(Conversation.id == state.conversation_id)
                            .values(message_count=seq + 1, updated_at=now)
                        )
                    else:
                        db.add(self._new_row(state, now, message_count=seq + 1))
                        await db.flush()
                    db.add(Message(
                        id=stamped.id,
                        conversation_id=state.conversation_id,
                        seq=seq,
                        content=stamped.content,
                        sender=stamped.sender,
                        message_type=stamped.type,
                        timestamp=stamped.timestamp,
                    ))
                    await db.commit()
            except SQLAlchemyError as exc:
                logger.error("Append failed for buddy %s: %s", buddy_id, exc)
                raise StorageError(f"Failed to persist message for buddy {buddy_id}") from exc

            if not state.persisted:
                state.created = now
                state.persisted = True
            state.messages.append(stamped)
            state.message_count = seq + 1
            state.last_updated = now

            if len(state.messages) > self.compact_threshold:
                try:
                    await self._compact_locked(state)
                except CompactionError as exc:
                    logger.warning("Compaction skipped for buddy %s: %s", buddy_id, exc)

            return stamped

    async def history(self, buddy_id: uuid.UUID, limit: int | None = None) -> list[ChatMessage]:
        """Most recent `limit` messages of the live window (all when omitted)."""
        if limit is not None and limit < 0:
            raise ValidationError("limit must not be negative")
        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)
            if limit is None:
                return list(state.messages)
            if limit == 0:
                return []
            return state.messages[-limit:]

    async def compact(self, buddy_id: uuid.UUID) -> CompactedSummary | None:
        """Compact the live window if it exceeds the threshold; otherwise a no-op."""
        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)
            try:
                return await self._compact_locked(state)
            except CompactionError as exc:
                logger.warning("Compaction skipped for buddy %s: %s", buddy_id, exc)
                return None

    async def summary(self, buddy_id: uuid.UUID) -> CompactedSummary | None:
        async with self._locks[buddy_id]:
            return (await self._load(buddy_id)).compacted_summary

    async def message_count(self, buddy_id: uuid.UUID) -> int:
        async with self._locks[buddy_id]:
            return (await self._load(buddy_id)).message_count

    async def delete(self, buddy_id: uuid.UUID) -> None:
        """Remove every persisted trace of a buddy's conversation."""
        async with self._locks[buddy_id]:
            try:
                async with self._session_factory() as db:
                    conversation_ids = select(Conversation.id).where(Conversation.buddy_id == buddy_id)
                    await db.execute(delete(Message).where(Message.conversation_id.in_(conversation_ids)))
                    await db.execute(delete(Conversation).where(Conversation.buddy_id == buddy_id))
                    await db.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Failed to delete conversation for buddy {buddy_id}") from exc
            self._cache.pop(buddy_id, None)
        self._locks.pop(buddy_id, None)

    async def stats(self, buddy_id: uuid.UUID) -> dict:
        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)
            user_messages = sum(1 for m in state.messages if m.sender == SENDER_USER)
            return {
                "total_messages": state.message_count,
                "user_messages": user_messages,
                "buddy_messages": len(state.messages) - user_messages,
                "last_message": state.messages[-1].to_dict() if state.messages else None,
                "created": state.created,
                "last_updated": state.last_updated,
                "has_compacted_data": state.compacted_summary is not None,
            }

    async def export(self, buddy_id: uuid.UUID, fmt: str = "json") -> dict | str:
        if fmt not in ("json", "txt"):
            raise ValidationError(f"Unsupported export format: {fmt!r}")
        async with self._locks[buddy_id]:
            state = await self._load(buddy_id)

        created = state.created.isoformat() if state.created else None
        last_updated = state.last_updated.isoformat() if state.last_updated else None

        if fmt == "txt":
            lines = [
                f"Conversation with Buddy {buddy_id}",
                f"Created: {created}",
                f"Last Updated: {last_updated}",
                "",
            ]
            for msg in state.messages:
                sender = "You" if msg.sender == SENDER_USER else "Buddy"
                lines.append(f"[{msg.timestamp}] {sender}: {msg.content}")
            return "\n".join(lines) + "\n"

        return {
            "buddy_id": str(buddy_id),
            "messages": [m.to_dict() for m in state.messages],
            "message_count": state.message_count,
            "compacted_summary": state.compacted_summary.to_dict() if state.compacted_summary else None,
            "created": created,
            "last_updated": last_updated,
        }

    def evict(self, buddy_id: uuid.UUID) -> None:
        """Drop the cached window so the next access reloads from storage."""
        self._cache.pop(buddy_id, None)

    # ─────────────────────────────────────────────
    # Internals (callers hold the buddy lock)
    # ─────────────────────────────────────────────

    def _new_row(self, state: ConversationState, now: datetime, message_count: int) -> Conversation:
        return Conversation(
            id=state.conversation_id,
            buddy_id=state.buddy_id,
            message_count=message_count,
            compacted_summary=None,
            created_at=now,
            updated_at=now,
        )

    async def _load(self, buddy_id: uuid.UUID) -> ConversationState:
        state = self._cache.get(buddy_id)
        if state is not None:
            return state

        try:
            async with self._session_factory() as db:
                row = (
                    await db.execute(select(Conversation).where(Conversation.buddy_id == buddy_id))
                ).scalar_one_or_none()
                if row is None:
                    state = ConversationState(buddy_id=buddy_id, conversation_id=uuid.uuid4())
                else:
                    messages = (
                        await db.execute(
                            select(Message)
                            .where(Message.conversation_id == row.id)
                            .order_by(Message.seq.asc())
                        )
                    ).scalars().all()
                    state = ConversationState(
                        buddy_id=buddy_id,
                        conversation_id=row.id,
                        messages=[_to_chat_message(m) for m in messages],
                        message_count=row.message_count,
                        compacted_summary=CompactedSummary.from_dict(row.compacted_summary),
                        created=as_utc(row.created_at),
                        last_updated=as_utc(row.updated_at),
                        persisted=True,
                    )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load conversation for buddy {buddy_id}") from exc

        self._cache[buddy_id] = state
        return state

    async def _compact_locked(self, state: ConversationState) -> CompactedSummary | None:
        if len(state.messages) <= self.compact_threshold:
            return None

        cut = len(state.messages) - self.compact_retain
        head = state.messages[:cut]
        tail = state.messages[cut:]
        first_kept_seq = state.first_seq + cut

        logger.info("Compacting %d messages for buddy %s", len(head), state.buddy_id)
        try:
            summary = merge_summaries(state.compacted_summary, self._summarizer(head))
        except Exception as exc:
            raise CompactionError(f"Summary failed for buddy {state.buddy_id}: {exc}") from exc

        now = utcnow()
        try:
            async with self._session_factory() as db:
                await db.execute(
                    delete(Message).where(
                        Message.conversation_id == state.conversation_id,
                        Message.seq < first_kept_seq,
                    )
                )
                await db.execute(
                    update(Conversation)
                    .where(Conversation.id == state.conversation_id)
                    .values(compacted_summary=summary.to_dict(), updated_at=now)
                )
                await log_event(
                    db, CONVERSATION_COMPACTED, state.buddy_id, source="conversation_store",
                    compacted=len(head), retained=len(tail), compaction_pass=summary.compaction_count,
                )
                await db.commit()
        except SQLAlchemyError as exc:
            raise CompactionError(f"Persisting compaction failed for buddy {state.buddy_id}: {exc}") from exc

        state.messages = list(tail)
        state.compacted_summary = summary
        state.last_updated = now
        return summary


def _to_chat_message(row: Message) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        content=row.content,
        sender=row.sender,
        timestamp=row.timestamp,
        type=row.message_type,
    )
