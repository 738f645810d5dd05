"""
Base settings class for environment configuration.

Uses Pydantic Settings for automatic environment variable loading.
Holds the infrastructure options every deployment needs (database, AI
provider, server); application settings extend it.

Example:
    from common.config import BaseAppSettings

    class Settings(BaseAppSettings):
        TWILIO_ACCOUNT_SID: str = ""

    settings = Settings()
    print(settings.MONGODB_URI)
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


PLACEHOLDER_PREFIXES = ("your_", "your-", "<")
PLACEHOLDER_VALUES = {"changeme", "change-me", "placeholder", "xxx", "todo"}


def is_placeholder(value: Optional[str]) -> bool:
    """True for empty values and the dummy values shipped in example env files."""
    if value is None:
        return True
    normalized = value.strip().lower()
    if not normalized:
        return True
    if normalized in PLACEHOLDER_VALUES:
        return True
    return normalized.startswith(PLACEHOLDER_PREFIXES)


class BaseAppSettings(BaseSettings):
    """
    Base settings class with common configuration options.

    Automatically loads values from environment variables.
    """

    # ==========================================================================
    # Database Settings
    # ==========================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "moodpulse"

    # ==========================================================================
    # AI Settings
    # ==========================================================================
    AI_PROVIDER: str = "openai"  # "openai" or "claude"

    # OpenAI Settings (used when AI_PROVIDER = "openai")
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: Optional[str] = None  # OpenAI-compatible endpoint

    # Claude Settings (used when AI_PROVIDER = "claude")
    CLAUDE_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-5-20250929"

    LLM_TIMEOUT_SECONDS: float = 30.0

    # ==========================================================================
    # Server Settings
    # ==========================================================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # CORS Settings
    CORS_ORIGINS: str = "*"  # Comma-separated origins or "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    # ==========================================================================
    # Pydantic Settings Configuration
    # ==========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
        case_sensitive=True,
    )

    def get_cors_origins(self) -> list:
        """Parse CORS_ORIGINS into a list."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"
