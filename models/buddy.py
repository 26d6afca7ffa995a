# models/buddy.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


def default_stats() -> dict:
    return {
        "messages_exchanged": 0,
        "conversations_started": 0,
        "total_time_spent": 0,
        "favorite_topics": [],
        "mood": "neutral",
    }


def default_settings() -> dict:
    return {
        "ai_provider": "auto",
        "learning_enabled": True,
        "private_messages_only": True,
        "free_messaging": {"enabled": False, "frequency": "normal"},
        "conversation_style": {"response_length": "medium", "emoji_usage": 0.3},
    }


class Buddy(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "buddies"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    personality_type: Mapped[str] = mapped_column(String(32), nullable=False)
    avatar: Mapped[str] = mapped_column(String(64), default="default")

    # dials, 0-10
    chattiness: Mapped[int] = mapped_column(Integer, default=5)
    intelligence: Mapped[int] = mapped_column(Integer, default=7)
    empathy: Mapped[int] = mapped_column(Integer, default=6)

    personality: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(16), default="online")
    friendship_score: Mapped[int] = mapped_column(Integer, default=0)
    last_interaction: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    stats: Mapped[dict] = mapped_column(JSON, default=default_stats)
    settings: Mapped[dict] = mapped_column(JSON, default=default_settings)
