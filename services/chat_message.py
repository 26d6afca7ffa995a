# services/chat_message.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

SENDER_USER = "user"
SENDER_BUDDY = "buddy"
SENDERS = (SENDER_USER, SENDER_BUDDY)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChatMessage:
    """One line of a conversation. Immutable once appended."""
    content: str
    sender: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: str | None = None
    type: str = "text"

    @classmethod
    def from_user(cls, content: str) -> ChatMessage:
        return cls(content=content, sender=SENDER_USER, timestamp=now_iso())

    @classmethod
    def from_buddy(cls, content: str) -> ChatMessage:
        return cls(content=content, sender=SENDER_BUDDY, timestamp=now_iso())

    def stamped(self) -> ChatMessage:
        if self.timestamp:
            return self
        return replace(self, timestamp=now_iso())

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "content": self.content,
            "sender": self.sender,
            "timestamp": self.timestamp,
            "type": self.type,
        }
