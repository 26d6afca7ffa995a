# services/compaction.py
"""
Derive a compacted summary from messages leaving the live window.

Only user-authored messages feed topics, moments, preferences, tone, and
milestones. Summaries chain: each pass is merged into the previous summary so
`original_message_count` always covers every message ever compacted.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Sequence

from ai.keywords import (
    ACHIEVEMENT_OBJECTS,
    DISLIKE_WORDS,
    LIKE_WORDS,
    MOMENT_NEGATIVE,
    MOMENT_POSITIVE,
    MOMENT_RELATIONSHIP,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    SUMMARY_TOPICS,
    contains_any,
)
from services.chat_message import SENDER_USER, ChatMessage, now_iso

MAX_KEY_TOPICS = 5
MAX_MOMENTS = 10
MAX_PREFERENCES = 20
EXCERPT_CHARS = 100

_WORD_RE = re.compile(r"[a-z0-9']+")


@dataclass
class CompactedSummary:
    original_message_count: int = 0
    last_pass_message_count: int = 0
    compaction_count: int = 0
    compacted_at: str | None = None
    time_span: dict = field(default_factory=lambda: {"start": None, "end": None})
    topic_counts: dict[str, int] = field(default_factory=dict)
    key_topics: list[dict] = field(default_factory=list)
    important_moments: list[dict] = field(default_factory=list)
    user_preferences: dict = field(
        default_factory=lambda: {"favorite_things": [], "dislikes": [], "interests": []}
    )
    tone_counts: dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "negative": 0, "neutral": 0}
    )
    emotional_tone: dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "negative": 0, "neutral": 100}
    )
    relationship_milestones: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> CompactedSummary | None:
        if not data:
            return None
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


# ── Extraction ──

def _user_messages(messages: Sequence[ChatMessage]) -> list[ChatMessage]:
    return [m for m in messages if m.sender == SENDER_USER]


def count_topics(messages: Sequence[ChatMessage]) -> Counter:
    counts: Counter = Counter()
    for msg in _user_messages(messages):
        content = msg.content.lower()
        for topic, words in SUMMARY_TOPICS.items():
            if any(w in content for w in words):
                counts[topic] += 1
    return counts


def top_topics(counts: dict[str, int], limit: int = MAX_KEY_TOPICS) -> list[dict]:
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"topic": topic, "mentions": n} for topic, n in ranked[:limit]]


def find_important_moments(messages: Sequence[ChatMessage]) -> list[dict]:
    moments: list[dict] = []

    for msg in _user_messages(messages):
        content = msg.content.lower()
        kinds: list[str] = []

        if contains_any(content, MOMENT_POSITIVE):
            kinds.append("positive_emotion")
        if contains_any(content, MOMENT_NEGATIVE):
            kinds.append("negative_emotion")
        if "got" in content and contains_any(content, ACHIEVEMENT_OBJECTS):
            kinds.append("achievement")
        if contains_any(content, MOMENT_RELATIONSHIP):
            kinds.append("relationship")

        for kind in kinds:
            moments.append({
                "type": kind,
                "timestamp": msg.timestamp,
                "content": msg.content[:EXCERPT_CHARS],
            })

    return moments[:MAX_MOMENTS]


def _object_after(words: list[str], index: int | None) -> str | None:
    if index is None or index + 1 >= len(words):
        return None
    return " ".join(words[index + 1:index + 3])


def extract_user_preferences(messages: Sequence[ChatMessage]) -> dict:
    favorite_things: list[str] = []
    dislikes: list[str] = []

    for msg in _user_messages(messages):
        words = _WORD_RE.findall(msg.content.lower())
        like_at = dislike_at = None
        for i, word in enumerate(words):
            negated = i > 0 and words[i - 1] in ("don't", "dont")
            if like_at is None and word in LIKE_WORDS and not negated:
                like_at = i
            elif dislike_at is None and (word in DISLIKE_WORDS or (word in LIKE_WORDS and negated)):
                dislike_at = i

        # likes and dislikes are read independently, first match of each
        liked = _object_after(words, like_at)
        if liked:
            favorite_things.append(liked)
        disliked = _object_after(words, dislike_at)
        if disliked:
            dislikes.append(disliked)

    return {
        "favorite_things": favorite_things[:MAX_PREFERENCES],
        "dislikes": dislikes[:MAX_PREFERENCES],
        "interests": [],
    }


def count_tone(messages: Sequence[ChatMessage]) -> dict[str, int]:
    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for msg in _user_messages(messages):
        has_positive = contains_any(msg.content, POSITIVE_WORDS)
        has_negative = contains_any(msg.content, NEGATIVE_WORDS)
        if has_positive and not has_negative:
            counts["positive"] += 1
        elif has_negative and not has_positive:
            counts["negative"] += 1
        else:
            counts["neutral"] += 1
    return counts


def tone_percentages(counts: dict[str, int]) -> dict[str, int]:
    total = sum(counts.values())
    if total == 0:
        return {"positive": 0, "negative": 0, "neutral": 100}
    return {k: round(v / total * 100) for k, v in counts.items()}


def find_relationship_milestones(messages: Sequence[ChatMessage]) -> list[dict]:
    milestones: list[dict] = []
    if messages:
        milestones.append({
            "type": "first_conversation",
            "timestamp": messages[0].timestamp,
            "description": "First time we chatted",
        })

    for msg in _user_messages(messages):
        if "friend" in msg.content.lower():
            milestones.append({
                "type": "friendship_mentioned",
                "timestamp": msg.timestamp,
                "description": "First time friendship was mentioned",
            })
            break

    return milestones


# ── Summaries ──

def summarize_messages(messages: Sequence[ChatMessage]) -> CompactedSummary:
    """Digest one batch of compacted messages."""
    topic_counts = dict(count_topics(messages))
    tone = count_tone(messages)
    preferences = extract_user_preferences(messages)
    key_topics = top_topics(topic_counts)
    preferences["interests"] = [t["topic"] for t in key_topics]

    return CompactedSummary(
        original_message_count=len(messages),
        last_pass_message_count=len(messages),
        compaction_count=1,
        compacted_at=now_iso(),
        time_span={
            "start": messages[0].timestamp if messages else None,
            "end": messages[-1].timestamp if messages else None,
        },
        topic_counts=topic_counts,
        key_topics=key_topics,
        important_moments=find_important_moments(messages),
        user_preferences=preferences,
        tone_counts=tone,
        emotional_tone=tone_percentages(tone),
        relationship_milestones=find_relationship_milestones(messages),
    )


def merge_summaries(previous: CompactedSummary | None, current: CompactedSummary) -> CompactedSummary:
    """Fold a fresh pass into the running summary."""
    if previous is None:
        return current

    topic_counts = Counter(previous.topic_counts)
    topic_counts.update(current.topic_counts)
    tone = Counter(previous.tone_counts)
    tone.update(current.tone_counts)
    tone_counts = {k: tone.get(k, 0) for k in ("positive", "negative", "neutral")}
    key_topics = top_topics(dict(topic_counts))

    prev_prefs = previous.user_preferences or {}
    cur_prefs = current.user_preferences or {}
    preferences = {
        "favorite_things": (prev_prefs.get("favorite_things", []) + cur_prefs.get("favorite_things", []))[-MAX_PREFERENCES:],
        "dislikes": (prev_prefs.get("dislikes", []) + cur_prefs.get("dislikes", []))[-MAX_PREFERENCES:],
        "interests": [t["topic"] for t in key_topics],
    }

    milestones = list(previous.relationship_milestones)
    seen = {m["type"] for m in milestones}
    for milestone in current.relationship_milestones:
        if milestone["type"] not in seen:
            milestones.append(milestone)
            seen.add(milestone["type"])

    return CompactedSummary(
        original_message_count=previous.original_message_count + current.last_pass_message_count,
        last_pass_message_count=current.last_pass_message_count,
        compaction_count=previous.compaction_count + 1,
        compacted_at=current.compacted_at,
        time_span={
            "start": (previous.time_span or {}).get("start") or current.time_span.get("start"),
            "end": current.time_span.get("end"),
        },
        topic_counts=dict(topic_counts),
        key_topics=key_topics,
        important_moments=(previous.important_moments + current.important_moments)[-MAX_MOMENTS:],
        user_preferences=preferences,
        tone_counts=tone_counts,
        emotional_tone=tone_percentages(tone_counts),
        relationship_milestones=milestones,
    )
