# ai/prompts/dials.py
"""Banded guidance text for each personality dial."""

DIAL_GUIDANCE: dict[str, dict[str, str]] = {
    "chattiness": {
        "low": "speak less, listen more",
        "medium": "balanced conversation",
        "high": "speak freely, ask questions",
    },
    "intelligence": {
        "low": "simple language, basic topics",
        "medium": "moderate complexity",
        "high": "complex ideas, detailed explanations",
    },
    "empathy": {
        "low": "focus on facts over feelings",
        "medium": "balanced emotional response",
        "high": "very emotionally aware and supportive",
    },
}

RELATIONSHIP_LINES: list[tuple[int, str]] = [
    (50, "Close friend who knows user well"),
    (20, "Good friend getting to know user"),
    (0, "New friend, still building relationship"),
]
