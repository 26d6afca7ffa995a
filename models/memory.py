# models/memory.py
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class Memory(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "memories"

    buddy_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), index=True, nullable=False)

    user_message: Mapped[str] = mapped_column(Text, nullable=False)
    buddy_response: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[str] = mapped_column(String(16), default="neutral")  # positive | negative | neutral
    topics: Mapped[list] = mapped_column(JSON, default=list)
    friendship_score: Mapped[int] = mapped_column(Integer, default=0)
