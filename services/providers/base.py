# services/providers/base.py
"""Base interface for text-generation backends."""
from __future__ import annotations

from abc import ABC, abstractmethod

from ai.prompt_builder import GenerationRequest

# Keep the model from continuing as the other speaker.
CHAT_STOP_SEQUENCES = ["\nUser:"]
TOP_P = 0.9


class GenerationBackend(ABC):
    """One generation provider. Adapters raise BackendUnavailable / BackendTimeout."""

    name: str = "backend"

    @abstractmethod
    async def probe(self, timeout: float) -> bool:
        """Return True if the backend answered within `timeout` seconds."""

    @abstractmethod
    async def complete(self, request: GenerationRequest, *, max_tokens: int, timeout: float) -> str:
        """Return raw generated text for `request`."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
