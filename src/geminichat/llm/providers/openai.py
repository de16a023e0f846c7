import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ..base import DEFAULT_TIMEOUT, CompletionClient
from ..errors import AuthError, NetworkError, RemoteError
from ..models import Message

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


def _to_openai_messages(
    history: tuple[Message, ...],
    system_prompt: str | None = None
) -> list[dict[str, str]]:
    """Convert conversation messages to Chat Completions format.

    Returns:
        List of message dicts with 'role' and 'content' keys
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend({"role": msg.role, "content": msg.text} for msg in history)
    return messages


class OpenAICompletionClient(CompletionClient):
    """OpenAI completion client.

    Works with OpenAI and any OpenAI-compatible endpoint via base_url
    (including Gemini's compatibility endpoint).

    Hidden design decisions:
    - OpenAI API client initialization (created on first use)
    - Message format conversion
    - Mapping of SDK exceptions onto ServiceError kinds
    - SDK retries are disabled; retry policy belongs to the caller
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        organization: str | None = None,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize OpenAI client.

        Args:
            api_key: API key. A missing key is reported as AuthError on the
                first completion rather than here.
            model: Default model to use
            base_url: Optional custom API base URL
            organization: Optional organization ID
            system_prompt: Optional system message prepended to every call
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Seconds before a call fails with NetworkError
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__(timeout=timeout)
        self._api_key = api_key.strip() if api_key else ""
        self._model = model
        self._base_url = base_url
        self._organization = organization
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client_kwargs = client_kwargs
        self._client: AsyncOpenAI | None = None

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def _get_client(self) -> AsyncOpenAI:
        if not self._api_key:
            raise AuthError(f"missing API key for {self._model}")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                organization=self._organization,
                timeout=self._timeout,
                max_retries=0,
                **self._client_kwargs
            )
        return self._client

    async def _generate(self, history: tuple[Message, ...]) -> str | None:
        client = self._get_client()

        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": _to_openai_messages(history, self._system_prompt),
            "temperature": self._temperature,
        }
        if self._max_tokens is not None:
            request_params["max_tokens"] = self._max_tokens

        try:
            completion = await client.chat.completions.create(**request_params)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.warning("%s rejected the credential: %s", self._model, e.message)
            raise AuthError(e.message) from e
        except openai.APIConnectionError as e:
            # Also covers APITimeoutError
            logger.warning("Request to %s failed: %s", self._model, e.message)
            raise NetworkError(e.message) from e
        except openai.APIStatusError as e:
            logger.warning("%s returned an error (%s): %s", self._model, e.status_code, e.message)
            raise RemoteError(e.message, status_code=e.status_code) from e

        if not completion.choices:
            return None
        return completion.choices[0].message.content

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async close for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        if self._client is not None:
            await self._client.close()
            self._client = None
