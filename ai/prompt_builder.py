# ai/prompt_builder.py
"""
Assembles a backend-agnostic generation request from the buddy's personality,
relationship state, compacted memories, recent turns, and the live message.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from ai.personality import PersonalityProfile, dial_band
from ai.prompts.dials import DIAL_GUIDANCE, RELATIONSHIP_LINES
from ai.prompts.system_buddy import SYSTEM_BUDDY
from services.chat_message import SENDER_USER, ChatMessage
from services.compaction import CompactedSummary
from services.friendship import friendship_level

DEFAULT_HISTORY_TURNS = 8
BASE_TEMPERATURE = 0.7
TEMPERATURE_SPAN = 0.3
REMEMBERED_MOMENTS = 3


@dataclass
class GenerationRequest:
    buddy_name: str
    personality_type: str
    system_prompt: str
    user_message: str
    history_lines: list[str] = field(default_factory=list)
    temperature: float = BASE_TEMPERATURE

    @property
    def conversation_block(self) -> str:
        return "\n".join(self.history_lines) or "This is the start of your conversation"

    @property
    def prompt(self) -> str:
        """Single-string rendering for completion-style backends."""
        return (
            f"{self.system_prompt}\n"
            f"RECENT CONVERSATION:\n{self.conversation_block}\n\n"
            f"Current user message: {self.user_message}\n\n"
            f"Respond as {self.buddy_name}:"
        )

    @property
    def chat_system_prompt(self) -> str:
        """System prompt for chat backends, with the recent turns folded in."""
        return f"{self.system_prompt}\nRECENT CONVERSATION:\n{self.conversation_block}"


def temperature_for(chattiness: int) -> float:
    return BASE_TEMPERATURE + chattiness / 10 * TEMPERATURE_SPAN


def relationship_line(score: int) -> str:
    for threshold, text in RELATIONSHIP_LINES:
        if score >= threshold:
            return text
    return RELATIONSHIP_LINES[-1][1]


def render_history(history: Sequence[ChatMessage], buddy_name: str, turns: int = DEFAULT_HISTORY_TURNS) -> list[str]:
    recent = list(history)[-turns:] if turns > 0 else []
    return [
        f"{'User' if msg.sender == SENDER_USER else buddy_name}: {msg.content}"
        for msg in recent
    ]


def render_memories(summary: CompactedSummary | None) -> str | None:
    if summary is None:
        return None

    lines: list[str] = []
    if summary.key_topics:
        topics = ", ".join(t["topic"] for t in summary.key_topics)
        lines.append(f"- You often talk about: {topics}")
    favorites = (summary.user_preferences or {}).get("favorite_things") or []
    if favorites:
        lines.append(f"- They like: {', '.join(favorites[-5:])}")
    for moment in summary.important_moments[-REMEMBERED_MOMENTS:]:
        lines.append(f"- ({moment['type'].replace('_', ' ')}) \"{moment['content']}\"")

    if not lines:
        return None
    return "THINGS YOU REMEMBER:\n" + "\n".join(lines)


def build_system_prompt(buddy: Any, personality: PersonalityProfile, summary: CompactedSummary | None = None) -> str:
    """Render the personality/relationship layers, then optional memories."""
    score = int(getattr(buddy, "friendship_score", 0) or 0)
    stats = getattr(buddy, "stats", None) or {}

    dials = {
        name: getattr(personality, name)
        for name in ("chattiness", "intelligence", "empathy")
    }
    sections: list[str] = [
        SYSTEM_BUDDY.format(
            name=buddy.name,
            personality_type=personality.personality_type.value,
            traits=", ".join(personality.traits) or "warm, friendly",
            style=personality.style or "casual and friendly",
            interests=", ".join(personality.interests) or "friendship, conversations",
            friendship_level=friendship_level(score),
            messages_exchanged=stats.get("messages_exchanged", 0),
            relationship=relationship_line(score),
            **{f"{name}_pct": round(value / 10 * 100) for name, value in dials.items()},
            **{f"{name}_guidance": DIAL_GUIDANCE[name][dial_band(value)] for name, value in dials.items()},
        )
    ]

    memory_block = render_memories(summary)
    if memory_block:
        sections.append(memory_block)

    return "\n\n".join(sections)


def build_generation_request(
    buddy: Any,
    personality: PersonalityProfile,
    recent_history: Sequence[ChatMessage],
    user_message: str,
    summary: CompactedSummary | None = None,
    history_turns: int = DEFAULT_HISTORY_TURNS,
) -> GenerationRequest:
    return GenerationRequest(
        buddy_name=buddy.name,
        personality_type=personality.personality_type.value,
        system_prompt=build_system_prompt(buddy, personality, summary),
        user_message=user_message,
        history_lines=render_history(recent_history, buddy.name, history_turns),
        temperature=temperature_for(personality.chattiness),
    )
