# services/friendship.py
"""
Friendship scoring: a bounded relationship metric updated once per exchange.

Scores never fall. Each exchange earns a base point plus bonuses for long
messages, emotional content, and questions.
"""
from __future__ import annotations

from ai.keywords import EMOTIONAL_WORDS, contains_any

MIN_SCORE = 0
MAX_SCORE = 100
LONG_MESSAGE_CHARS = 50

FRIENDSHIP_LEVELS: list[tuple[int, str]] = [
    (80, "Best Friends"),
    (60, "Close Friends"),
    (40, "Good Friends"),
    (20, "Friends"),
]


def score_exchange(current_score: int, user_message: str) -> int:
    """Return the new friendship score after the user sends `user_message`."""
    current = max(MIN_SCORE, min(MAX_SCORE, int(current_score or 0)))
    text = user_message or ""

    delta = 1
    if len(text) > LONG_MESSAGE_CHARS:
        delta += 1
    if contains_any(text, EMOTIONAL_WORDS):
        delta += 2
    if "?" in text:
        delta += 1

    return min(MAX_SCORE, current + delta)


def friendship_level(score: int) -> str:
    for threshold, label in FRIENDSHIP_LEVELS:
        if score >= threshold:
            return label
    return "New Friend"
