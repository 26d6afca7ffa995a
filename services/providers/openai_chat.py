# services/providers/openai_chat.py
"""Hosted chat completions through the OpenAI API."""
from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from ai.prompt_builder import GenerationRequest
from services.errors import BackendTimeout, BackendUnavailable
from services.providers.base import CHAT_STOP_SEQUENCES, TOP_P, GenerationBackend

logger = logging.getLogger(__name__)


class OpenAIBackend(GenerationBackend):
    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-3.5-turbo",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def probe(self, timeout: float) -> bool:
        if not self.api_key:
            logger.info("OpenAI: no API key configured")
            return False
        try:
            await self.client.with_options(timeout=timeout).models.list()
        except openai.APIError as exc:
            logger.info("OpenAI: unavailable (%s)", exc)
            return False
        logger.info("OpenAI: available")
        return True

    async def complete(self, request: GenerationRequest, *, max_tokens: int, timeout: float) -> str:
        messages = [
            {"role": "system", "content": request.chat_system_prompt},
            {"role": "user", "content": request.user_message},
        ]
        logger.info("LLM: sending %d messages to %s", len(messages), self.model)
        try:
            response = await self.client.with_options(timeout=timeout).chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=request.temperature,
                max_tokens=max_tokens,
                top_p=TOP_P,
                stop=CHAT_STOP_SEQUENCES,
            )
        except openai.APITimeoutError as exc:
            raise BackendTimeout(self.name, str(exc)) from exc
        except openai.APIError as exc:
            raise BackendUnavailable(self.name, str(exc)) from exc

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise BackendUnavailable(self.name, f"malformed payload: {exc}") from exc
        return text or ""
