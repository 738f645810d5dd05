"""
MoodPulse application settings.

Extends the base settings with carrier and pipeline configuration. Settings
are read once at process start; components receive the frozen config structs
built here instead of reading the environment themselves.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from common.config import BaseAppSettings, is_placeholder
from common.utils.exceptions import ConfigurationError
from config.messaging_config import TWILIO_API_BASE_URL


@dataclass(frozen=True)
class CarrierConfig:
    """Credentials and endpoint for the messaging carrier."""
    account_sid: str
    auth_token: str
    sender_number: str
    api_base_url: str = TWILIO_API_BASE_URL

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: Missing or placeholder credentials
        """
        problems = []
        if is_placeholder(self.account_sid):
            problems.append("TWILIO_ACCOUNT_SID is missing or a placeholder")
        if is_placeholder(self.auth_token):
            problems.append("TWILIO_AUTH_TOKEN is missing or a placeholder")
        if is_placeholder(self.sender_number):
            problems.append("TWILIO_WHATSAPP_NUMBER is missing or a placeholder")
        if not self.api_base_url.startswith(("http://", "https://")):
            problems.append("TWILIO_API_BASE_URL must be an http(s) URL")
        if problems:
            raise ConfigurationError("Messaging carrier", problems)


@dataclass(frozen=True)
class LLMConfig:
    """Language-model provider selection and credentials."""
    provider: str
    api_key: Optional[str]
    model: str
    timeout_seconds: float
    base_url: Optional[str] = None


@dataclass(frozen=True)
class DispatchConfig:
    """Bounds for bulk sends."""
    max_concurrency: int = 10
    send_timeout_seconds: float = 15.0


class Settings(BaseAppSettings):
    """MoodPulse-specific settings."""

    # ==========================================================================
    # Messaging Carrier (Twilio WhatsApp)
    # ==========================================================================
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_WHATSAPP_NUMBER: Optional[str] = None
    TWILIO_API_BASE_URL: str = TWILIO_API_BASE_URL

    # Signature check on inbound webhooks; only disable for local tunnels
    WEBHOOK_VALIDATE_SIGNATURE: bool = True
    # External URL the carrier calls, when behind a proxy that rewrites Host
    PUBLIC_BASE_URL: Optional[str] = None

    # ==========================================================================
    # Bulk Dispatch
    # ==========================================================================
    DISPATCH_MAX_CONCURRENCY: int = 10
    DISPATCH_SEND_TIMEOUT_SECONDS: float = 15.0

    # ==========================================================================
    # Follow-up Queue (work done after acknowledging an inbound message)
    # ==========================================================================
    FOLLOWUP_QUEUE_SIZE: int = 500
    FOLLOWUP_WORKERS: int = 2

    # ==========================================================================
    # Insights
    # ==========================================================================
    INSIGHT_LOOKBACK_DAYS: int = 30
    INSIGHT_DEDUP_HOURS: int = 24

    def carrier_config(self) -> CarrierConfig:
        """
        Build and validate the carrier config.

        Raises:
            ConfigurationError: Missing or placeholder credentials
        """
        config = CarrierConfig(
            account_sid=self.TWILIO_ACCOUNT_SID or "",
            auth_token=self.TWILIO_AUTH_TOKEN or "",
            sender_number=self.TWILIO_WHATSAPP_NUMBER or "",
            api_base_url=self.TWILIO_API_BASE_URL,
        )
        config.validate()
        return config

    def llm_config(self) -> LLMConfig:
        """Build the language-model config for the selected provider."""
        provider = self.AI_PROVIDER.strip().lower()
        if provider == "claude":
            return LLMConfig(
                provider=provider,
                api_key=self.CLAUDE_API_KEY,
                model=self.CLAUDE_MODEL,
                timeout_seconds=self.LLM_TIMEOUT_SECONDS,
            )
        return LLMConfig(
            provider=provider,
            api_key=self.OPENAI_API_KEY,
            model=self.OPENAI_MODEL,
            timeout_seconds=self.LLM_TIMEOUT_SECONDS,
            base_url=self.OPENAI_BASE_URL,
        )

    def dispatch_config(self) -> DispatchConfig:
        """
        Raises:
            ConfigurationError: Non-positive bounds
        """
        problems = []
        if self.DISPATCH_MAX_CONCURRENCY < 1:
            problems.append("DISPATCH_MAX_CONCURRENCY must be at least 1")
        if self.DISPATCH_SEND_TIMEOUT_SECONDS <= 0:
            problems.append("DISPATCH_SEND_TIMEOUT_SECONDS must be positive")
        if problems:
            raise ConfigurationError("Bulk dispatcher", problems)
        return DispatchConfig(
            max_concurrency=self.DISPATCH_MAX_CONCURRENCY,
            send_timeout_seconds=self.DISPATCH_SEND_TIMEOUT_SECONDS,
        )


@lru_cache()
def get_settings() -> Settings:
    """Read settings from the environment once per process."""
    return Settings()
