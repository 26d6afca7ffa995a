# tests/test_config.py
"""Tests for settings-derived storage paths."""
from __future__ import annotations

from api.app.config import Settings


def test_default_database_lives_under_data_dir(tmp_path):
    data_dir = tmp_path / "buddy-data"
    settings = Settings(data_dir=str(data_dir), database_url=None)

    url = settings.resolved_database_url

    assert url == f"sqlite+aiosqlite:///{data_dir / 'buddies.db'}"
    assert data_dir.is_dir()


def test_explicit_database_url_wins(tmp_path):
    data_dir = tmp_path / "unused"
    settings = Settings(data_dir=str(data_dir), database_url="sqlite+aiosqlite:///:memory:")

    assert settings.resolved_database_url == "sqlite+aiosqlite:///:memory:"
    assert not data_dir.exists()
