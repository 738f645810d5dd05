"""
Abstract AI provider interface.

Defines the contract that all LLM providers implement so callers can swap
between Claude and OpenAI-compatible endpoints without code changes.

Example:
    from common.ai import create_ai_provider

    provider = create_ai_provider("openai", api_key="sk-...", model="gpt-4o-mini")
    text = await provider.chat("Summarise these check-ins", system_prompt="...")
"""

from abc import ABC, abstractmethod
from typing import Optional, Any


class AIProvider(ABC):
    """
    Abstract AI provider interface.

    Implementations make exactly one completion request per chat() call;
    retry policy is fixed when the provider is constructed.
    """

    name: str = "unknown"

    @abstractmethod
    async def chat(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> str:
        """
        Send a message and get a response.

        Args:
            message: The user's message
            system_prompt: Optional system instructions
            max_tokens: Maximum tokens in the response
            temperature: Sampling temperature (0-1)
            **kwargs: Provider-specific options

        Returns:
            The raw response text
        """
        pass

    async def close(self) -> None:
        """Release the underlying HTTP client, if any."""
        client = getattr(self, "client", None)
        if client is not None and hasattr(client, "close"):
            await client.close()
