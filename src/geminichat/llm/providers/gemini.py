"""Google Gemini completion client.

Uses the official Google GenAI SDK for async chat completions.
Reference: https://github.com/googleapis/python-genai

Note: Gemini can return a response without any text when the prompt or the
candidate is blocked by safety filtering. That case is reported as
EmptyResponseError instead of being retried.
"""

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from ..base import DEFAULT_TIMEOUT, CompletionClient
from ..errors import AuthError, NetworkError, RemoteError
from ..models import Message

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Status names the API uses for credential problems
_AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}


def _is_auth_failure(error: errors.APIError) -> bool:
    """Check whether an API error means the credential was rejected.

    Gemini answers an invalid key with 400 INVALID_ARGUMENT, so the
    message is inspected as well as the status code.
    """
    if error.code in (401, 403):
        return True
    if (error.status or "").upper() in _AUTH_STATUSES:
        return True
    return "api key" in (error.message or "").lower()


class GeminiCompletionClient(CompletionClient):
    """Google Gemini completion client.

    Hidden design decisions:
    - Google GenAI client initialization (created on first use)
    - Message format conversion (assistant turns use the "model" role)
    - Extraction of text from candidates and blocked responses
    - Mapping of SDK and transport exceptions onto ServiceError kinds
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_GEMINI_MODEL,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize Gemini client.

        Args:
            api_key: Google AI API key. A missing key is reported as AuthError
                on the first completion rather than here.
            model: Model name (gemini-2.5-flash, gemini-2.5-pro, ...)
            system_prompt: Optional system instruction sent with every call
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate (None for model default)
            timeout: Seconds before a call fails with NetworkError
            **client_kwargs: Additional kwargs for genai.Client
        """
        super().__init__(timeout=timeout)
        self._api_key = api_key.strip() if api_key else ""
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client_kwargs = client_kwargs
        self._client: genai.Client | None = None

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    def _get_client(self) -> genai.Client:
        if not self._api_key:
            raise AuthError("missing Gemini API key")
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key, **self._client_kwargs)
        return self._client

    def _convert_messages(self, history: tuple[Message, ...]) -> list[types.Content]:
        """Convert conversation messages to Gemini contents."""
        return [
            types.Content(
                role="user" if msg.is_user else "model",
                parts=[types.Part(text=msg.text)]
            )
            for msg in history
        ]

    def _build_config(self) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(
            temperature=self._temperature,
            system_instruction=self._system_prompt,
        )
        if self._max_tokens is not None:
            config.max_output_tokens = self._max_tokens
        return config

    def _extract_content(self, response: Any) -> str | None:
        """Extract text content from a Gemini response.

        Args:
            response: Gemini GenerateContentResponse

        Returns:
            Joined text of the first candidate, or None if there is none
        """
        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                texts = [part.text for part in candidate.content.parts if getattr(part, "text", None)]
                if texts:
                    return "".join(texts)

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            logger.warning("Gemini blocked the prompt: %s", feedback.block_reason)
        return None

    async def _generate(self, history: tuple[Message, ...]) -> str | None:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=self._convert_messages(history),
                config=self._build_config()
            )
        except errors.APIError as e:
            if _is_auth_failure(e):
                logger.warning("Gemini rejected the credential: %s", e.message)
                raise AuthError(e.message or "credential rejected") from e
            logger.warning("Gemini returned an error (%s): %s", e.code, e.message)
            raise RemoteError(e.message or str(e), status_code=e.code) from e
        except httpx.TransportError as e:
            logger.warning("Gemini request failed: %s", e)
            raise NetworkError(str(e) or type(e).__name__) from e

        return self._extract_content(response)

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing;
        dropping the reference is enough.
        """
        self._client = None
