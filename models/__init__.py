from models.base import Base
from models.buddy import Buddy
from models.conversation import Conversation
from models.message import Message
from models.memory import Memory
from models.event import Event

__all__ = [
    "Base",
    "Buddy",
    "Conversation",
    "Message",
    "Memory",
    "Event",
]
