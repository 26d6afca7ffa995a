# ai/keywords.py
"""Fixed keyword tables shared by scoring, compaction, and memory tagging."""
from __future__ import annotations

# Friendship scoring bonus
EMOTIONAL_WORDS: tuple[str, ...] = (
    "love", "happy", "sad", "excited", "worried", "grateful", "angry",
)

# Tone and mood
POSITIVE_WORDS: tuple[str, ...] = (
    "happy", "great", "awesome", "love", "excited", "amazing", "wonderful", "fantastic",
)
NEGATIVE_WORDS: tuple[str, ...] = (
    "sad", "bad", "terrible", "hate", "angry", "frustrated", "awful", "horrible",
)

# Topic table used when compacting old messages
SUMMARY_TOPICS: dict[str, tuple[str, ...]] = {
    "work": ("job", "work", "office", "boss", "meeting", "project"),
    "family": ("family", "mom", "dad", "sister", "brother", "parent"),
    "hobbies": ("hobby", "game", "sport", "music", "art", "read"),
    "food": ("eat", "food", "cook", "restaurant", "meal", "hungry"),
    "technology": ("computer", "phone", "app", "internet", "software"),
    "travel": ("travel", "trip", "vacation", "visit", "journey"),
    "health": ("health", "exercise", "doctor", "sick", "medicine"),
    "entertainment": ("movie", "show", "book", "video", "watch"),
}

# Topic table used when tagging a single interaction memory
MEMORY_TOPICS: dict[str, tuple[str, ...]] = {
    "technology": ("computer", "phone", "internet", "app", "software", "ai", "robot"),
    "entertainment": ("movie", "music", "game", "show", "book", "video"),
    "food": ("eat", "food", "restaurant", "cook", "meal", "hungry"),
    "work": ("job", "work", "boss", "meeting", "project", "office"),
    "relationships": ("friend", "family", "love", "relationship", "together"),
    "hobbies": ("hobby", "sport", "exercise", "art", "music", "read"),
}

# Important-moment triggers
MOMENT_POSITIVE: tuple[str, ...] = ("excited", "amazing", "wonderful")
MOMENT_NEGATIVE: tuple[str, ...] = ("sad", "upset", "worried")
MOMENT_RELATIONSHIP: tuple[str, ...] = ("friend", "relationship", "dating")
ACHIEVEMENT_OBJECTS: tuple[str, ...] = ("job", "promotion")

LIKE_WORDS: tuple[str, ...] = ("love", "like", "enjoy")
DISLIKE_WORDS: tuple[str, ...] = ("hate", "dislike")


def contains_any(text: str, words) -> bool:
    """Case-insensitive substring match against a word list."""
    lowered = text.lower()
    return any(word in lowered for word in words)


def match_topics(text: str, table: dict[str, tuple[str, ...]]) -> list[str]:
    lowered = text.lower()
    return [topic for topic, words in table.items() if any(w in lowered for w in words)]
