# ai/fallbacks.py
"""Canned replies used whenever no backend produces a usable response."""
from __future__ import annotations

import random

FALLBACK_RESPONSES: dict[str, tuple[str, ...]] = {
    "friendly": (
        "Hey! That's really cool! 😊",
        "I love chatting with you!",
        "You always have the best stories!",
        "That's awesome! Tell me more!",
        "Haha, you're so fun to talk to!",
    ),
    "intellectual": (
        "That's a fascinating perspective.",
        "I find that quite thought-provoking.",
        "There are many angles to consider here.",
        "That raises some interesting questions.",
        "I appreciate the complexity of that topic.",
    ),
    "funny": (
        "Haha, that's hilarious! 😄",
        "You crack me up!",
        "That reminds me of something funny...",
        "LOL! You're too much!",
        "I needed that laugh today!",
    ),
    "supportive": (
        "I'm here for you! 💙",
        "That sounds really important to you.",
        "You're doing great!",
        "I believe in you!",
        "Thanks for sharing that with me.",
    ),
    "adventurous": (
        "That sounds like an adventure! ⚡",
        "I'm ready for whatever comes next!",
        "Life is so exciting!",
        "Let's explore this together!",
        "That gets me pumped up!",
    ),
    "mysterious": (
        "Interesting... there's more here than appears.",
        "The truth often hides in plain sight.",
        "Some things are best discovered slowly.",
        "Mystery makes life more intriguing.",
        "There are layers to everything.",
    ),
    "wise": (
        "Every experience teaches us something.",
        "Time reveals many truths.",
        "Patience often brings clarity.",
        "Understanding comes with reflection.",
        "Life has many lessons to offer.",
    ),
    "creative": (
        "I can see the artistry in that! 🎨",
        "Imagination is everything!",
        "Every moment is creative potential!",
        "That sparks my creativity!",
        "Beauty is everywhere if we look!",
    ),
}

DEFAULT_FALLBACK_TYPE = "friendly"


def pick_fallback(personality_type: str | None, rng: random.Random | None = None) -> str:
    """Pick a canned reply for the personality, uniformly at random."""
    pool = FALLBACK_RESPONSES.get(personality_type or "", FALLBACK_RESPONSES[DEFAULT_FALLBACK_TYPE])
    return (rng or random).choice(pool)
