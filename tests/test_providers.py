# tests/test_providers.py
"""
Tests for backend adapters, mocking the network with httpx.MockTransport and
the hosted SDK clients with AsyncMock.
"""
from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from ai.prompt_builder import GenerationRequest
from services.errors import BackendTimeout, BackendUnavailable
from services.providers import AnthropicBackend, OllamaBackend, OpenAIBackend
from services.providers.ollama import candidate_urls


def _request() -> GenerationRequest:
    return GenerationRequest(
        buddy_name="Nova",
        personality_type="friendly",
        system_prompt="You are Nova",
        user_message="how was your day?",
        history_lines=["User: hey", "Nova: hi!"],
        temperature=0.85,
    )


# ── Ollama ──

def test_candidate_urls_for_localhost():
    assert candidate_urls("http://localhost:11434/") == [
        "http://127.0.0.1:11434",
        "http://[::1]:11434",
        "http://localhost:11434",
    ]
    assert candidate_urls("http://ollama.internal:11434") == ["http://ollama.internal:11434"]


async def test_ollama_probe_falls_through_to_ipv6():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "127.0.0.1":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"models": []})

    backend = OllamaBackend("http://localhost:11434", transport=httpx.MockTransport(handler))
    assert await backend.probe(timeout=1) is True
    assert seen == ["127.0.0.1", "::1"]
    assert backend.base_url == "http://[::1]:11434"


async def test_ollama_probe_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    backend = OllamaBackend("http://localhost:11434", transport=httpx.MockTransport(handler))
    assert await backend.probe(timeout=1) is False


async def test_ollama_complete_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "It was lovely, thanks!"})

    backend = OllamaBackend("http://127.0.0.1:11434", model="llama3.2", transport=httpx.MockTransport(handler))
    text = await backend.complete(_request(), max_tokens=200, timeout=5)

    assert text == "It was lovely, thanks!"
    assert captured["path"] == "/api/generate"
    body = captured["body"]
    assert body["model"] == "llama3.2"
    assert body["stream"] is False
    assert body["prompt"].endswith("Respond as Nova:")
    assert body["options"] == {
        "temperature": 0.85,
        "top_p": 0.9,
        "num_predict": 200,
        "stop": ["\nUser:", "\n\n"],
    }


async def test_ollama_complete_http_error():
    backend = OllamaBackend(
        "http://127.0.0.1:11434",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )
    with pytest.raises(BackendUnavailable):
        await backend.complete(_request(), max_tokens=200, timeout=5)


async def test_ollama_complete_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    backend = OllamaBackend("http://127.0.0.1:11434", transport=httpx.MockTransport(handler))
    with pytest.raises(BackendTimeout):
        await backend.complete(_request(), max_tokens=200, timeout=5)


async def test_ollama_complete_malformed_payload():
    backend = OllamaBackend(
        "http://127.0.0.1:11434",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"done": True})),
    )
    with pytest.raises(BackendUnavailable):
        await backend.complete(_request(), max_tokens=200, timeout=5)


# ── OpenAI ──

def _openai_client(content: str | None = "Pretty good!") -> MagicMock:
    client = MagicMock()
    client.with_options.return_value = client
    client.models.list = AsyncMock(return_value=[])
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    ))
    return client


async def test_openai_probe_without_key_skips_network():
    client = _openai_client()
    backend = OpenAIBackend(api_key=None, client=client)
    assert await backend.probe(timeout=1) is False
    client.models.list.assert_not_called()


async def test_openai_probe_with_key():
    backend = OpenAIBackend(api_key="sk-test", client=_openai_client())
    assert await backend.probe(timeout=1) is True


async def test_openai_probe_api_error():
    client = _openai_client()
    client.models.list.side_effect = openai.APIConnectionError(request=httpx.Request("GET", "https://api.openai.com"))
    backend = OpenAIBackend(api_key="sk-test", client=client)
    assert await backend.probe(timeout=1) is False


async def test_openai_complete_sends_chat_messages():
    client = _openai_client("Pretty good!")
    backend = OpenAIBackend(api_key="sk-test", model="gpt-3.5-turbo", client=client)

    assert await backend.complete(_request(), max_tokens=200, timeout=5) == "Pretty good!"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-3.5-turbo"
    assert kwargs["max_tokens"] == 200
    assert kwargs["temperature"] == 0.85
    assert kwargs["stop"] == ["\nUser:"]
    assert kwargs["messages"][0]["role"] == "system"
    assert "Nova: hi!" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1] == {"role": "user", "content": "how was your day?"}


async def test_openai_complete_timeout():
    client = _openai_client()
    client.chat.completions.create.side_effect = openai.APITimeoutError(
        request=httpx.Request("POST", "https://api.openai.com")
    )
    backend = OpenAIBackend(api_key="sk-test", client=client)
    with pytest.raises(BackendTimeout):
        await backend.complete(_request(), max_tokens=200, timeout=5)


# ── Anthropic ──

def _anthropic_client(blocks) -> MagicMock:
    client = MagicMock()
    client.with_options.return_value = client
    client.models.list = AsyncMock(return_value=[])
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=blocks))
    return client


async def test_anthropic_probe_without_key_skips_network():
    client = _anthropic_client([])
    backend = AnthropicBackend(api_key=None, client=client)
    assert await backend.probe(timeout=1) is False
    client.models.list.assert_not_called()


async def test_anthropic_probe_lists_models():
    client = _anthropic_client([])
    backend = AnthropicBackend(api_key="sk-ant-test", client=client)
    assert await backend.probe(timeout=1) is True
    client.with_options.assert_called_with(timeout=1)
    client.models.list.assert_awaited_once_with(limit=1)


async def test_anthropic_probe_connection_error():
    client = _anthropic_client([])
    client.models.list.side_effect = anthropic.APIConnectionError(
        request=httpx.Request("GET", "https://api.anthropic.com")
    )
    backend = AnthropicBackend(api_key="sk-ant-test", client=client)
    assert await backend.probe(timeout=1) is False


async def test_anthropic_complete_joins_text_blocks():
    client = _anthropic_client([
        SimpleNamespace(type="text", text="Great, "),
        SimpleNamespace(type="text", text="thanks for asking!"),
    ])
    backend = AnthropicBackend(api_key="sk-ant-test", client=client)

    assert await backend.complete(_request(), max_tokens=200, timeout=5) == "Great, thanks for asking!"

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["system"].startswith("You are Nova")
    assert kwargs["messages"] == [{"role": "user", "content": "how was your day?"}]
    assert kwargs["stop_sequences"] == ["\nUser:"]


async def test_anthropic_complete_without_text():
    backend = AnthropicBackend(api_key="sk-ant-test", client=_anthropic_client([]))
    with pytest.raises(BackendUnavailable):
        await backend.complete(_request(), max_tokens=200, timeout=5)
