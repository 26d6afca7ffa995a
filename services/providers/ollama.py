# services/providers/ollama.py
"""Local generation through an Ollama server."""
from __future__ import annotations

import logging

import httpx

from ai.prompt_builder import GenerationRequest
from services.errors import BackendTimeout, BackendUnavailable
from services.providers.base import CHAT_STOP_SEQUENCES, TOP_P, GenerationBackend

logger = logging.getLogger(__name__)

STOP_SEQUENCES = CHAT_STOP_SEQUENCES + ["\n\n"]


def candidate_urls(base_url: str) -> list[str]:
    """localhost may resolve to either stack; try IPv4, IPv6, then as given."""
    base_url = base_url.rstrip("/")
    if "localhost" not in base_url:
        return [base_url]
    urls = [
        base_url.replace("localhost", "127.0.0.1"),
        base_url.replace("localhost", "[::1]"),
        base_url,
    ]
    return list(dict.fromkeys(urls))


class OllamaBackend(GenerationBackend):
    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.2",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def probe(self, timeout: float) -> bool:
        async with self._client(timeout) as client:
            for url in candidate_urls(self.base_url):
                try:
                    response = await client.get(f"{url}/api/tags")
                except httpx.HTTPError as exc:
                    logger.debug("Ollama probe %s failed: %s", url, exc)
                    continue
                if response.status_code == 200:
                    self.base_url = url
                    logger.info("Ollama: available at %s", url)
                    return True
        logger.info("Ollama: unavailable (tried %s)", ", ".join(candidate_urls(self.base_url)))
        return False

    async def complete(self, request: GenerationRequest, *, max_tokens: int, timeout: float) -> str:
        payload = {
            "model": self.model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "top_p": TOP_P,
                "num_predict": max_tokens,
                "stop": STOP_SEQUENCES,
            },
        }
        try:
            async with self._client(timeout) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise BackendTimeout(self.name, str(exc) or "timed out") from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailable(self.name, str(exc)) from exc
        except ValueError as exc:
            raise BackendUnavailable(self.name, f"malformed payload: {exc}") from exc

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise BackendUnavailable(self.name, "malformed payload: missing 'response'")
        return text
