# services/providers/anthropic_chat.py
"""Hosted chat through the Anthropic messages API."""
from __future__ import annotations

import logging

import anthropic
from anthropic import AsyncAnthropic

from ai.prompt_builder import GenerationRequest
from services.errors import BackendTimeout, BackendUnavailable
from services.providers.base import CHAT_STOP_SEQUENCES, GenerationBackend

logger = logging.getLogger(__name__)

MAX_TEMPERATURE = 1.0


class AnthropicBackend(GenerationBackend):
    name = "anthropic"

    def __init__(
        self,
        api_key: str | None,
        model: str = "claude-3-haiku-20240307",
        client: AsyncAnthropic | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        return self._client

    async def probe(self, timeout: float) -> bool:
        if not self.api_key:
            logger.info("Anthropic: no API key configured")
            return False
        try:
            await self.client.with_options(timeout=timeout).models.list(limit=1)
        except anthropic.APIError as exc:
            logger.info("Anthropic: unavailable (%s)", exc)
            return False
        logger.info("Anthropic: available")
        return True

    async def complete(self, request: GenerationRequest, *, max_tokens: int, timeout: float) -> str:
        try:
            response = await self.client.with_options(timeout=timeout).messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=request.chat_system_prompt,
                messages=[{"role": "user", "content": request.user_message}],
                temperature=min(request.temperature, MAX_TEMPERATURE),
                stop_sequences=CHAT_STOP_SEQUENCES,
            )
        except anthropic.APITimeoutError as exc:
            raise BackendTimeout(self.name, str(exc)) from exc
        except anthropic.APIError as exc:
            raise BackendUnavailable(self.name, str(exc)) from exc

        parts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        if not parts:
            raise BackendUnavailable(self.name, "malformed payload: no text content")
        return "".join(parts)
