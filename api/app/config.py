# api/app/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application configuration.

    Loads environment variables from `.env` and provides
    typed access across the API, the buddy server, and services.
    """

    # ─────────────────────────────────────────────
    # Pydantic Settings Config
    # ─────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Storage
    # ─────────────────────────────────────────────
    data_dir: str = "./data"
    # unset: a SQLite file under data_dir
    database_url: str | None = None

    # ─────────────────────────────────────────────
    # Generation backends (probed in provider_order)
    # ─────────────────────────────────────────────
    provider_order: list[str] = ["ollama", "openai", "anthropic"]

    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    openai_api_key: str | None = None
    openai_model: str = "gpt-3.5-turbo"

    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-haiku-20240307"

    probe_timeout: float = 5.0
    generation_timeout: float = 30.0
    max_tokens: int = 200

    # ─────────────────────────────────────────────
    # Conversation memory
    # ─────────────────────────────────────────────
    compact_threshold: int = 500
    compact_retain: int = 200
    history_turns: int = 8

    # ─────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────
    log_level: str = "INFO"

    # ─────────────────────────────────────────────
    # Derived Properties
    # ─────────────────────────────────────────────
    @property
    def data_path(self) -> Path:
        """
        Ensures the data directory exists
        and returns Path object.
        """
        p = Path(self.data_dir)
        p.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_path / 'buddies.db'}"


# ─────────────────────────────────────────────
# Cached Settings Instance
# ─────────────────────────────────────────────
@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance so config
    is only loaded once per process.
    """
    return Settings()
