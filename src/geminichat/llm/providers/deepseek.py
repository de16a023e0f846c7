from typing import Any

from ..base import DEFAULT_TIMEOUT
from .openai import OpenAICompletionClient

DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"


class DeepSeekCompletionClient(OpenAICompletionClient):
    """DeepSeek completion client using the OpenAI-compatible API.

    Hidden design decisions:
    - DeepSeek endpoint and default model
    - Everything else is shared with the OpenAI client
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "deepseek-chat",
        base_url: str = DEFAULT_DEEPSEEK_BASE_URL,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize DeepSeek client.

        Args:
            api_key: DeepSeek API key
            model: Default model to use ('deepseek-chat' or 'deepseek-reasoner')
            base_url: DeepSeek API base URL (default: https://api.deepseek.com)
            system_prompt: Optional system message prepended to every call
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Seconds before a call fails with NetworkError
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__(
            api_key=api_key,
            model=model,
            base_url=base_url,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **client_kwargs
        )
