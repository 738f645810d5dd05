"""
Provider construction from configuration values.
"""

from typing import Optional

from common.ai.base import AIProvider
from common.config.base_settings import is_placeholder
from common.utils.exceptions import ConfigurationError

SUPPORTED_PROVIDERS = ("openai", "claude")


def create_ai_provider(
    provider: str,
    api_key: Optional[str],
    model: str,
    timeout: float,
    base_url: Optional[str] = None,
    max_retries: int = 0,
) -> AIProvider:
    """
    Build an AI provider, failing fast on unusable configuration.

    Raises:
        ConfigurationError: Unknown provider or missing/placeholder API key
    """
    provider = (provider or "").strip().lower()
    problems = []

    if provider not in SUPPORTED_PROVIDERS:
        problems.append(
            f"AI_PROVIDER must be one of {', '.join(SUPPORTED_PROVIDERS)} (got '{provider}')"
        )
    if is_placeholder(api_key):
        problems.append(f"API key for '{provider}' is missing or a placeholder")
    if timeout <= 0:
        problems.append("LLM timeout must be positive")

    if problems:
        raise ConfigurationError("Language model", problems)

    if provider == "claude":
        from common.ai.claude import ClaudeProvider

        return ClaudeProvider(
            api_key=api_key,
            model=model,
            max_retries=max_retries,
            timeout=timeout,
            base_url=base_url,
        )

    from common.ai.openai import OpenAIProvider

    return OpenAIProvider(
        api_key=api_key,
        model=model,
        max_retries=max_retries,
        timeout=timeout,
        base_url=base_url,
    )
