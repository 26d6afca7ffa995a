# models/conversation.py
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class Conversation(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "conversations"

    buddy_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    message_count: Mapped[int] = mapped_column(Integer, default=0)
    compacted_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)
