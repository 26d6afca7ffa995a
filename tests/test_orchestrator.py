# tests/test_orchestrator.py
"""
Tests for backend selection, sanitization, and the fallback guarantee.
"""
from __future__ import annotations

import asyncio
import random
from types import SimpleNamespace

import pytest

from ai.fallbacks import FALLBACK_RESPONSES
from ai.prompt_builder import GenerationRequest
from services.errors import BackendUnavailable
from services.orchestrator import (
    ProviderOrchestrator,
    ProviderState,
    ProviderStatus,
    build_backends,
    sanitize_response,
)
from tests.fakes import FakeBackend


def _request(personality_type: str = "funny") -> GenerationRequest:
    return GenerationRequest(
        buddy_name="Giggles",
        personality_type=personality_type,
        system_prompt="You are Giggles",
        user_message="hi",
    )


# ── Selection ──

async def test_selects_first_reachable_in_order():
    orchestrator = ProviderOrchestrator([
        FakeBackend("ollama", reachable=False),
        FakeBackend("openai"),
        FakeBackend("anthropic"),
    ])
    state = await orchestrator.initialize()
    assert state.status is ProviderStatus.READY
    assert state.selected == "openai"
    assert dict(state.availability) == {"ollama": False, "openai": True, "anthropic": True}


async def test_degraded_when_nothing_reachable(offline_orchestrator):
    state = await offline_orchestrator.initialize()
    assert state.status is ProviderStatus.DEGRADED
    assert state.selected is None


async def test_probe_exception_counts_as_unreachable():
    class Exploding(FakeBackend):
        async def probe(self, timeout):
            raise ConnectionError("refused")

    orchestrator = ProviderOrchestrator([Exploding("ollama"), FakeBackend("openai")])
    state = await orchestrator.initialize()
    assert state.availability["ollama"] is False
    assert state.selected == "openai"


async def test_slow_probe_is_bounded():
    orchestrator = ProviderOrchestrator([FakeBackend("ollama", delay=1.0), FakeBackend("openai")], probe_timeout=0.05)
    state = await asyncio.wait_for(orchestrator.initialize(), timeout=0.5)
    assert state.availability["ollama"] is False
    assert state.selected == "openai"


async def test_probes_run_in_parallel():
    backends = [FakeBackend(name, delay=0.2) for name in ("ollama", "openai", "anthropic")]
    orchestrator = ProviderOrchestrator(backends)
    loop = asyncio.get_running_loop()
    started = loop.time()
    await orchestrator.initialize()
    assert loop.time() - started < 0.5


# ── Generation ──

async def test_generate_uses_selected_backend():
    backend = FakeBackend("ollama", reply="Giggles: Knock knock!")
    orchestrator = ProviderOrchestrator([backend])
    state = await orchestrator.initialize()

    result = await orchestrator.generate(state, _request())
    assert result.text == "Knock knock!"
    assert result.provider == "ollama"
    assert result.used_fallback is False
    assert len(backend.requests) == 1


@pytest.mark.parametrize("personality_type", sorted(FALLBACK_RESPONSES))
async def test_fallback_when_degraded(offline_orchestrator, personality_type):
    state = await offline_orchestrator.initialize()
    result = await offline_orchestrator.generate(state, _request(personality_type))
    assert result.used_fallback is True
    assert result.provider == "fallback"
    assert result.text in FALLBACK_RESPONSES[personality_type]


async def test_fallback_when_uninitialized():
    orchestrator = ProviderOrchestrator([FakeBackend("ollama")])
    result = await orchestrator.generate(ProviderState(), _request())
    assert result.used_fallback is True


async def test_backend_error_falls_back_without_switching():
    failing = FakeBackend("ollama", error=BackendUnavailable("ollama", "500 Internal Server Error"))
    spare = FakeBackend("openai")
    orchestrator = ProviderOrchestrator([failing, spare])
    state = await orchestrator.initialize()

    result = await orchestrator.generate(state, _request())
    assert result.used_fallback is True
    assert "500" in result.error
    assert spare.requests == []


async def test_unexpected_exception_falls_back():
    orchestrator = ProviderOrchestrator([FakeBackend("ollama", error=KeyError("choices"))])
    state = await orchestrator.initialize()
    result = await orchestrator.generate(state, _request())
    assert result.used_fallback is True
    assert result.text in FALLBACK_RESPONSES["funny"]


async def test_generation_timeout_falls_back():
    backend = FakeBackend("ollama")
    orchestrator = ProviderOrchestrator([backend], generation_timeout=0.05)
    state = await orchestrator.initialize()
    backend.delay = 1.0

    result = await asyncio.wait_for(orchestrator.generate(state, _request()), timeout=0.5)
    assert result.used_fallback is True
    assert "ollama" in result.error


async def test_empty_reply_falls_back():
    orchestrator = ProviderOrchestrator([FakeBackend("ollama", reply="  \n  ")])
    state = await orchestrator.initialize()
    result = await orchestrator.generate(state, _request())
    assert result.used_fallback is True


async def test_unknown_personality_uses_friendly_table(offline_orchestrator):
    state = await offline_orchestrator.initialize()
    result = await offline_orchestrator.generate(state, _request("grumpy"))
    assert result.text in FALLBACK_RESPONSES["friendly"]


async def test_fallback_choice_is_seedable():
    a = ProviderOrchestrator([], rng=random.Random(3))
    b = ProviderOrchestrator([], rng=random.Random(3))
    state_a, state_b = await a.initialize(), await b.initialize()
    picks_a = [(await a.generate(state_a, _request())).text for _ in range(5)]
    picks_b = [(await b.generate(state_b, _request())).text for _ in range(5)]
    assert picks_a == picks_b


# ── Sanitization ──

@pytest.mark.parametrize("raw,expected", [
    ("  hello there  ", "hello there"),
    ("Assistant: sure thing", "sure thing"),
    ("system: hi", "hi"),
    ("AI: yo", "yo"),
    ("User: what", "what"),
    ("giggles: hehe", "hehe"),
    ("first line\nsecond line", "first line"),
    ("wow!!!!! really???", "wow!! really??"),
    ("ok!!", "ok!!"),
    ("", ""),
    ("Giggles:   ", ""),
])
def test_sanitize_response(raw, expected):
    assert sanitize_response(raw, "Giggles") == expected


def test_sanitize_caps_length():
    cleaned = sanitize_response("a" * 2500, "Giggles")
    assert len(cleaned) == 2000
    assert cleaned.endswith("...")


def test_sanitize_only_strips_one_prefix():
    assert sanitize_response("Assistant: User: hi", "Giggles") == "User: hi"


def test_build_backends_follows_provider_order():
    settings = SimpleNamespace(
        provider_order=["anthropic", "bogus", "ollama"],
        ollama_url="http://localhost:11434",
        ollama_model="llama3.2",
        openai_api_key=None,
        openai_model="gpt-3.5-turbo",
        anthropic_api_key=None,
        anthropic_model="claude-3-haiku-20240307",
    )
    assert [b.name for b in build_backends(settings)] == ["anthropic", "ollama"]
