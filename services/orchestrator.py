# services/orchestrator.py
"""
Provider orchestration: probe backends once, select one, generate with a
bounded timeout, sanitize, and fall back to canned replies on any failure.

State is an immutable ProviderState value returned by `initialize` and passed
back into `generate`, so several orchestrators can coexist without sharing
anything.
"""
from __future__ import annotations

import asyncio
import logging
import random
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

from ai.fallbacks import pick_fallback
from ai.prompt_builder import GenerationRequest
from services.errors import BackendTimeout
from services.providers import AnthropicBackend, GenerationBackend, OllamaBackend, OpenAIBackend

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0
GENERATION_TIMEOUT_SECONDS = 30.0
MAX_TOKENS = 200
MAX_RESPONSE_CHARS = 2000
FALLBACK_PROVIDER = "fallback"

_ROLE_PREFIX_RE = re.compile(r"^\s*(?:system|assistant|ai|user):", re.IGNORECASE)
_EXCLAMATIONS_RE = re.compile(r"!{3,}")
_QUESTIONS_RE = re.compile(r"\?{3,}")


class ProviderStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    PROBING = "probing"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ProviderState:
    status: ProviderStatus = ProviderStatus.UNINITIALIZED
    availability: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    selected: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is ProviderStatus.READY and self.selected is not None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "availability": dict(self.availability),
            "selected": self.selected,
        }


@dataclass
class GenerationResult:
    text: str
    provider: str
    used_fallback: bool = False
    latency_ms: int = 0
    error: str | None = None


def sanitize_response(raw: str | None, buddy_name: str | None = None) -> str:
    """Clean raw model text. Returns "" when nothing usable is left."""
    if not raw:
        return ""

    cleaned = raw.strip()
    cleaned = _ROLE_PREFIX_RE.sub("", cleaned, count=1)
    if buddy_name:
        cleaned = re.sub(rf"^\s*{re.escape(buddy_name)}:", "", cleaned, count=1, flags=re.IGNORECASE)
    cleaned = cleaned.strip()
    cleaned = cleaned.split("\n", 1)[0]

    if len(cleaned) > MAX_RESPONSE_CHARS:
        cleaned = cleaned[: MAX_RESPONSE_CHARS - 3] + "..."

    cleaned = _EXCLAMATIONS_RE.sub("!!", cleaned)
    cleaned = _QUESTIONS_RE.sub("??", cleaned)
    return cleaned.strip()


class ProviderOrchestrator:
    def __init__(
        self,
        backends: Sequence[GenerationBackend],
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        generation_timeout: float = GENERATION_TIMEOUT_SECONDS,
        max_tokens: int = MAX_TOKENS,
        rng: random.Random | None = None,
    ) -> None:
        self.backends: dict[str, GenerationBackend] = {b.name: b for b in backends}
        self.probe_timeout = min(probe_timeout, PROBE_TIMEOUT_SECONDS)
        self.generation_timeout = generation_timeout
        self.max_tokens = max_tokens
        self._rng = rng or random.Random()

    async def _probe(self, backend: GenerationBackend) -> bool:
        try:
            return bool(await asyncio.wait_for(backend.probe(self.probe_timeout), timeout=self.probe_timeout))
        except Exception as exc:
            logger.info("%s: unavailable (%s)", backend.name, exc or type(exc).__name__)
            return False

    async def initialize(self) -> ProviderState:
        """Probe every backend in parallel and select the first reachable one."""
        names = list(self.backends)
        logger.info("Probing %d generation backends: %s", len(names), ", ".join(names) or "-")

        results = await asyncio.gather(*(self._probe(self.backends[n]) for n in names))
        availability = dict(zip(names, results))
        selected = next((n for n in names if availability[n]), None)

        state = ProviderState(
            status=ProviderStatus.READY if selected else ProviderStatus.DEGRADED,
            availability=MappingProxyType(availability),
            selected=selected,
        )
        if selected:
            logger.info("Provider ready (using: %s)", selected)
        else:
            logger.warning("No generation backend reachable; replies will use fallbacks")
        return state

    def fallback(self, request: GenerationRequest, started: float, error: str | None = None) -> GenerationResult:
        return GenerationResult(
            text=pick_fallback(request.personality_type, self._rng),
            provider=FALLBACK_PROVIDER,
            used_fallback=True,
            latency_ms=int((time.monotonic() - started) * 1000),
            error=error,
        )

    async def generate(self, state: ProviderState, request: GenerationRequest) -> GenerationResult:
        """Generate a reply. Never raises; any failure yields a fallback reply."""
        started = time.monotonic()

        backend = self.backends.get(state.selected) if state.is_ready else None
        if backend is None:
            return self.fallback(request, started)

        try:
            raw = await asyncio.wait_for(
                backend.complete(request, max_tokens=self.max_tokens, timeout=self.generation_timeout),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError:
            exc = BackendTimeout(backend.name, f"no reply within {self.generation_timeout:.0f}s")
            logger.error("AI generation error with %s: %s", backend.name, exc)
            return self.fallback(request, started, str(exc))
        except Exception as exc:
            logger.error("AI generation error with %s: %s", backend.name, exc)
            return self.fallback(request, started, str(exc))

        text = sanitize_response(raw, request.buddy_name)
        if not text:
            logger.warning("%s returned no usable text; using fallback", backend.name)
            return self.fallback(request, started, "empty response")

        return GenerationResult(
            text=text,
            provider=backend.name,
            latency_ms=int((time.monotonic() - started) * 1000),
        )


def build_backends(settings) -> list[GenerationBackend]:
    """Instantiate the configured backends in priority order."""
    factories = {
        "ollama": lambda: OllamaBackend(settings.ollama_url, settings.ollama_model),
        "openai": lambda: OpenAIBackend(settings.openai_api_key, settings.openai_model),
        "anthropic": lambda: AnthropicBackend(settings.anthropic_api_key, settings.anthropic_model),
    }
    backends: list[GenerationBackend] = []
    for name in settings.provider_order:
        factory = factories.get(name)
        if factory is None:
            logger.warning("Ignoring unknown provider in provider_order: %s", name)
            continue
        backends.append(factory())
    return backends
