from services.providers.base import GenerationBackend
from services.providers.ollama import OllamaBackend
from services.providers.openai_chat import OpenAIBackend
from services.providers.anthropic_chat import AnthropicBackend

__all__ = ["GenerationBackend", "OllamaBackend", "OpenAIBackend", "AnthropicBackend"]
