# ai/personality.py
"""
Template-driven personality profiles for buddies.

A profile is rendered once from the buddy's personality type and its three
dials, then stored alongside the buddy:

  funny, chattiness=8  → traits humorous/witty/…, style "casual with jokes and puns",
                         response style "talks frequently, asks follow-up questions, …"
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

from services.errors import ValidationError

DIAL_MIN = 0
DIAL_MAX = 10
DIALS = ("chattiness", "intelligence", "empathy")


class PersonalityType(str, Enum):
    FRIENDLY = "friendly"
    INTELLECTUAL = "intellectual"
    FUNNY = "funny"
    SUPPORTIVE = "supportive"
    ADVENTUROUS = "adventurous"
    MYSTERIOUS = "mysterious"
    WISE = "wise"
    CREATIVE = "creative"


@dataclass(frozen=True)
class PersonalityTemplate:
    traits: tuple[str, ...]
    greeting: str
    style: str
    interests: tuple[str, ...]


# ── Base templates ──

TEMPLATES: dict[PersonalityType, PersonalityTemplate] = {
    PersonalityType.FRIENDLY: PersonalityTemplate(
        traits=("warm", "outgoing", "enthusiastic", "positive"),
        greeting="Hey there! 😊 I'm so excited to meet you!",
        style="casual and upbeat",
        interests=("friendship", "fun activities", "helping others", "sharing stories"),
    ),
    PersonalityType.INTELLECTUAL: PersonalityTemplate(
        traits=("analytical", "curious", "thoughtful", "knowledgeable"),
        greeting="Hello! I find our meeting quite fascinating from a social perspective.",
        style="formal and precise",
        interests=("learning", "philosophy", "science", "deep conversations"),
    ),
    PersonalityType.FUNNY: PersonalityTemplate(
        traits=("humorous", "witty", "playful", "entertaining"),
        greeting="Hey! Why did the AI cross the chat room? To get to the other side! 😄",
        style="casual with jokes and puns",
        interests=("comedy", "memes", "funny stories", "making people laugh"),
    ),
    PersonalityType.SUPPORTIVE: PersonalityTemplate(
        traits=("caring", "empathetic", "nurturing", "understanding"),
        greeting="Hi there! I'm here for you, and I'm so glad we can be friends. 💙",
        style="gentle and encouraging",
        interests=("helping others", "emotional support", "listening", "encouragement"),
    ),
    PersonalityType.ADVENTUROUS: PersonalityTemplate(
        traits=("energetic", "bold", "explorer", "spontaneous"),
        greeting="Hey! Ready for an adventure? Life's too short to be boring! ⚡",
        style="energetic and exclamatory",
        interests=("adventure", "new experiences", "sports", "travel"),
    ),
    PersonalityType.MYSTERIOUS: PersonalityTemplate(
        traits=("enigmatic", "intriguing", "deep", "contemplative"),
        greeting="Greetings... There's more to this meeting than mere chance, don't you think?",
        style="cryptic and thought-provoking",
        interests=("mysteries", "philosophy", "hidden meanings", "ancient wisdom"),
    ),
    PersonalityType.WISE: PersonalityTemplate(
        traits=("sage", "patient", "insightful", "philosophical"),
        greeting="Welcome, friend. In every new friendship lies the potential for great wisdom.",
        style="calm and reflective",
        interests=("wisdom", "life lessons", "spirituality", "guidance"),
    ),
    PersonalityType.CREATIVE: PersonalityTemplate(
        traits=("artistic", "imaginative", "expressive", "innovative"),
        greeting="Hi! I see the world as a canvas of possibilities. What shall we create together? 🎨",
        style="expressive and colorful",
        interests=("art", "creativity", "imagination", "self-expression"),
    ),
}

# ── Response style phrases per dial band ──

_STYLE_PHRASES: dict[str, dict[str, tuple[str, ...]]] = {
    "chattiness": {
        "high": ("talks frequently", "asks follow-up questions", "shares personal thoughts"),
        "low": ("speaks when spoken to", "gives concise responses", "listens more than talks"),
    },
    "intelligence": {
        "high": ("uses complex vocabulary", "provides detailed explanations", "references various topics"),
        "low": ("uses simple language", "gives straightforward answers", "keeps things basic"),
    },
    "empathy": {
        "high": ("shows emotional understanding", "asks about feelings", "offers comfort and support"),
        "low": ("focuses on facts over feelings", "gives practical advice", "maintains emotional distance"),
    },
}

GENERAL_TOPICS = ("movies", "music", "games", "weather", "food")


@dataclass
class PersonalityProfile:
    """Rendered personality for one buddy."""
    personality_type: PersonalityType
    chattiness: int
    intelligence: int
    empathy: int
    traits: list[str] = field(default_factory=list)
    greeting: str = ""
    style: str = ""
    interests: list[str] = field(default_factory=list)
    response_style: str = ""
    communication_preferences: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["personality_type"] = self.personality_type.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PersonalityProfile:
        return cls(
            personality_type=parse_personality_type(data.get("personality_type")),
            chattiness=validate_dial("chattiness", data.get("chattiness")),
            intelligence=validate_dial("intelligence", data.get("intelligence")),
            empathy=validate_dial("empathy", data.get("empathy")),
            traits=list(data.get("traits") or []),
            greeting=data.get("greeting") or "",
            style=data.get("style") or "",
            interests=list(data.get("interests") or []),
            response_style=data.get("response_style") or "",
            communication_preferences=dict(data.get("communication_preferences") or {}),
        )


def parse_personality_type(value) -> PersonalityType:
    if isinstance(value, PersonalityType):
        return value
    try:
        return PersonalityType(str(value).lower())
    except ValueError:
        raise ValidationError(f"Unknown personality type: {value!r}") from None


def validate_dial(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if not DIAL_MIN <= value <= DIAL_MAX:
        raise ValidationError(f"{name} must be between {DIAL_MIN} and {DIAL_MAX}, got {value}")
    return value


def dial_band(value: int) -> str:
    """Map a 0-10 dial to low (≤3), medium (4-6) or high (≥7)."""
    if value <= 3:
        return "low"
    if value >= 7:
        return "high"
    return "medium"


def build_response_style(chattiness: int, intelligence: int, empathy: int) -> str:
    styles: list[str] = []
    for dial, value in zip(DIALS, (chattiness, intelligence, empathy)):
        styles.extend(_STYLE_PHRASES[dial].get(dial_band(value), ()))
    return ", ".join(styles)


def _level(value: int, high: str, medium: str, low: str) -> str:
    if value >= 6:
        return high
    if value >= 4:
        return medium
    return low


def build_communication_preferences(chattiness: int, intelligence: int, empathy: int) -> dict:
    topics: list[str] = []
    if intelligence >= 6:
        topics.extend(["science", "technology", "philosophy", "books", "learning"])
    if empathy >= 6:
        topics.extend(["relationships", "feelings", "personal growth", "helping others"])
    if intelligence <= 4:
        topics.extend(["daily life", "simple pleasures", "basic interests"])
    if empathy <= 4:
        topics.extend(["facts", "news", "hobbies", "activities"])
    topics.extend(GENERAL_TOPICS)

    return {
        "preferred_topics": topics,
        "conversation_length": _level(chattiness, "long", "medium", "short"),
        "emotional_expression": _level(empathy, "high", "medium", "low"),
        "complexity_level": _level(intelligence, "high", "medium", "low"),
    }


def build_personality(
    personality_type,
    chattiness: int = 5,
    intelligence: int = 7,
    empathy: int = 6,
) -> PersonalityProfile:
    """Render a profile from the type template and the three dials."""
    ptype = parse_personality_type(personality_type)
    chattiness = validate_dial("chattiness", chattiness)
    intelligence = validate_dial("intelligence", intelligence)
    empathy = validate_dial("empathy", empathy)

    template = TEMPLATES[ptype]
    return PersonalityProfile(
        personality_type=ptype,
        chattiness=chattiness,
        intelligence=intelligence,
        empathy=empathy,
        traits=list(template.traits),
        greeting=template.greeting,
        style=template.style,
        interests=list(template.interests),
        response_style=build_response_style(chattiness, intelligence, empathy),
        communication_preferences=build_communication_preferences(chattiness, intelligence, empathy),
    )
