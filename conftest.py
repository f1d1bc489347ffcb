import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    sys.path.insert(0, str(Path(__file__).parent / "src"))


@pytest.fixture
def settings(monkeypatch):
    """Sets dummy env vars and returns a loaded Settings object."""
    monkeypatch.setenv("TELEGRAM_API_ID", "12345")
    monkeypatch.setenv("TELEGRAM_API_HASH", "test_telegram_hash")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "12345:test_bot_token")
    monkeypatch.setenv("TWITTER_BEARER_TOKEN", "test_bearer_token")
    from src.twideo.config.settings import Settings

    return Settings.load()
