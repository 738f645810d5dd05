"""
Anthropic Claude AI provider implementation.

Example:
    from common.ai import ClaudeProvider

    claude = ClaudeProvider(api_key="your-api-key")
    response = await claude.chat(
        message="Summarise this week's check-ins",
        system_prompt="Respond with JSON only."
    )
"""

from typing import Optional, Dict, Any

from common.ai.base import AIProvider


class ClaudeProvider(AIProvider):
    """
    Anthropic Claude AI provider.

    Uses the async Anthropic SDK client.
    """

    name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        max_retries: int = 0,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
    ):
        """
        Initialize Claude provider.

        Args:
            api_key: Anthropic API key
            model: Model to use
            max_retries: SDK-level retries for failed requests
            timeout: Request timeout in seconds
            base_url: Optional alternative API endpoint
        """
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "anthropic package is required for Claude. "
                "Install with: pip install anthropic"
            )

        client_kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "max_retries": max_retries,
            "timeout": timeout,
        }
        if base_url:
            client_kwargs["base_url"] = base_url

        self.client = AsyncAnthropic(**client_kwargs)
        self.model = model

    async def chat(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> str:
        """Send message and get response from Claude."""
        params: Dict[str, Any] = {
            "model": kwargs.get("model", self.model),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": message}],
        }

        if system_prompt:
            params["system"] = system_prompt

        for key in ["stop_sequences", "top_p", "top_k", "metadata"]:
            if key in kwargs:
                params[key] = kwargs[key]

        response = await self.client.messages.create(**params)
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
