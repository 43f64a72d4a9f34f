"""
Tests for settings loading.
"""

import pytest
from pydantic import ValidationError
from app.config import Settings

REQUIRED = {
    "TELEGRAM_BOT_TOKEN": "123:abc",
    "WEBHOOK_ID": "abc-123",
    "API_ENDPOINT": "https://crew.example.com/kickoff",
}


@pytest.fixture
def env(monkeypatch):
    for key in REQUIRED:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestSettings:

    def test_loads_required_values(self, env):
        for key, value in REQUIRED.items():
            env.setenv(key, value)

        settings = Settings(_env_file=None)

        assert settings.telegram_bot_token == "123:abc"
        assert settings.trigger_prefix == "!runcrew"
        assert settings.poll_interval_seconds == 60
        assert settings.max_message_chars == 1900

    def test_capture_urls(self, env):
        for key, value in REQUIRED.items():
            env.setenv(key, value)

        settings = Settings(_env_file=None)

        assert settings.webhook_url == "https://webhook.site/abc-123"
        assert settings.webhook_fetch_url == "https://webhook.site/token/abc-123/requests?sorting=newest"

    @pytest.mark.parametrize("missing", list(REQUIRED))
    def test_missing_required_value_is_fatal(self, env, missing):
        for key, value in REQUIRED.items():
            if key != missing:
                env.setenv(key, value)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
