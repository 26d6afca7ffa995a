from ai.prompts.system_buddy import SYSTEM_BUDDY
from ai.prompts.dials import DIAL_GUIDANCE, RELATIONSHIP_LINES

__all__ = ["SYSTEM_BUDDY", "DIAL_GUIDANCE", "RELATIONSHIP_LINES"]
