"""
OpenAI provider implementation.

Works with api.openai.com and any OpenAI-compatible chat completions
endpoint (set base_url).

Example:
    from common.ai import OpenAIProvider

    openai = OpenAIProvider(api_key="your-api-key", model="gpt-4o-mini")
    response = await openai.chat(
        message="Summarise this week's check-ins",
        system_prompt="Respond with JSON only."
    )
"""

from typing import Optional, List, Dict, Any

from common.ai.base import AIProvider


class OpenAIProvider(AIProvider):
    """
    OpenAI chat completions provider.

    Uses the OpenAI async client for API calls.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_retries: int = 0,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Chat model to use
            max_retries: SDK-level retries for failed requests
            timeout: Request timeout in seconds
            base_url: Optional OpenAI-compatible endpoint
            organization: Optional OpenAI organization ID
        """
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ImportError(
                "openai package is required for OpenAI. "
                "Install with: pip install openai"
            )

        self.client = AsyncOpenAI(
            api_key=api_key,
            max_retries=max_retries,
            timeout=timeout,
            base_url=base_url,
            organization=organization,
        )
        self.model = model

    async def chat(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> str:
        """Send message and get response from OpenAI."""
        messages: List[Dict[str, str]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": message})

        params: Dict[str, Any] = {
            "model": kwargs.get("model", self.model),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        for key in ["stop", "presence_penalty", "frequency_penalty", "top_p", "seed"]:
            if key in kwargs:
                params[key] = kwargs[key]

        response = await self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""
