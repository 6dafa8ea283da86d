from __future__ import annotations

import os

import pytest

# voicerelay.main reads settings at import time
os.environ.setdefault("ASSEMBLYAI_API_KEY", "test-key")

from voicerelay.config.settings import Settings, get_settings  # noqa: E402
from voicerelay.services.metrics import metrics  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_state(monkeypatch):
    for name in (
        "PROVIDER_TIMEOUT_SECONDS",
        "PROVIDER_POLL_INTERVAL_SECONDS",
        "PROVIDER_POLLING_TIMEOUT_SECONDS",
        "RETRY_ATTEMPTS",
        "RETRY_BACKOFF_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    metrics.reset()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        assemblyai_api_key="test-key",
        assemblyai_base_url="https://provider.test",
        _env_file=None,
    )
