"""Pytest fixtures. Use asyncio for async tests."""

from typing import Generator

import pytest

from ring_oracle.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop any oracle env vars from the host so tests see only defaults and explicit overrides."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
