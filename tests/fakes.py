# tests/fakes.py
from __future__ import annotations

import asyncio

from services.providers.base import GenerationBackend


class FakeBackend(GenerationBackend):
    """In-process backend with scripted reachability and replies."""

    def __init__(self, name: str, reachable: bool = True, reply: str = "Hey, good to hear from you!",
                 error: Exception | None = None, delay: float = 0.0):
        self.name = name
        self.reachable = reachable
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []

    async def probe(self, timeout: float) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reachable

    async def complete(self, request, *, max_tokens: int, timeout: float) -> str:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply
