"""Unit tests for settings and the config structs built from them."""

import pytest

from common.ai import create_ai_provider
from common.config import is_placeholder
from common.utils.exceptions import ConfigurationError
from moodpulse.config import Settings, get_settings


@pytest.fixture
def settings(monkeypatch):
    for name in (
        "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_NUMBER",
        "AI_PROVIDER", "OPENAI_API_KEY", "CLAUDE_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    def build(**overrides):
        return Settings(_env_file=None, **overrides)
    return build


class TestPlaceholders:
    @pytest.mark.parametrize("value", [None, "", "  ", "your_api_key", "<token>", "changeme"])
    def test_placeholder_values(self, value):
        assert is_placeholder(value) is True

    def test_real_value(self):
        assert is_placeholder("AC0123456789") is False


class TestCarrierConfig:
    def test_missing_credentials_raise(self, settings):
        with pytest.raises(ConfigurationError) as exc_info:
            settings().carrier_config()

        assert exc_info.value.component == "Messaging carrier"
        assert len(exc_info.value.problems) == 3

    def test_placeholder_token_raises(self, settings):
        with pytest.raises(ConfigurationError):
            settings(
                TWILIO_ACCOUNT_SID="AC0123456789",
                TWILIO_AUTH_TOKEN="your_auth_token",
                TWILIO_WHATSAPP_NUMBER="+14155238886",
            ).carrier_config()

    def test_valid(self, settings):
        config = settings(
            TWILIO_ACCOUNT_SID="AC0123456789",
            TWILIO_AUTH_TOKEN="secret",
            TWILIO_WHATSAPP_NUMBER="+14155238886",
        ).carrier_config()

        assert config.account_sid == "AC0123456789"
        assert config.api_base_url == "https://api.twilio.com"


class TestDispatchConfig:
    def test_defaults(self, settings):
        config = settings().dispatch_config()

        assert config.max_concurrency == 10
        assert config.send_timeout_seconds == 15.0

    def test_non_positive_bounds_raise(self, settings):
        with pytest.raises(ConfigurationError) as exc_info:
            settings(DISPATCH_MAX_CONCURRENCY=0, DISPATCH_SEND_TIMEOUT_SECONDS=0).dispatch_config()

        assert len(exc_info.value.problems) == 2


class TestLLMConfig:
    def test_claude_selection(self, settings):
        config = settings(AI_PROVIDER="Claude", CLAUDE_API_KEY="sk-ant-test").llm_config()

        assert config.provider == "claude"
        assert config.api_key == "sk-ant-test"

    def test_missing_key_raises_on_provider_creation(self, settings):
        config = settings(AI_PROVIDER="openai").llm_config()

        with pytest.raises(ConfigurationError):
            create_ai_provider(config.provider, config.api_key, config.model, config.timeout_seconds)

    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError):
            create_ai_provider("gemini", "key-123", "model", 30.0)


class TestGetSettings:
    def test_built_once(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
