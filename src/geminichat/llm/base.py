import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .errors import EmptyResponseError, NetworkError
from .models import Message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class CompletionClient(ABC):
    """Abstract base class for completion clients.

    This module hides the design decision of which remote language service
    answers the conversation. Implementations must handle provider-specific
    details like:
    - API client setup and authentication
    - Request/response format conversion
    - Mapping SDK exceptions onto the ServiceError taxonomy

    Clients are stateless with respect to the conversation: the whole history
    is sent on every call and nothing is retained between calls. There are no
    retries; a failed call raises and the caller decides what to do.

    Supports async context manager protocol for proper resource cleanup:
        async with client:
            reply = await client.complete(history)
        # Automatically cleaned up
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize shared client settings.

        Args:
            timeout: Seconds to wait for the remote service before failing
                with NetworkError
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        """Bounded wait in seconds for a single completion."""
        return self._timeout

    @property
    @abstractmethod
    def model(self) -> str:
        """Get the model name used for completions."""

    async def complete(self, history: Sequence[Message]) -> str:
        """Generate the assistant's next utterance for a conversation.

        Args:
            history: The full ordered conversation, oldest first. Must not
                be empty. It is read, never modified.

        Returns:
            The assistant reply text

        Raises:
            ValueError: If history is empty
            NetworkError: On transport failure or when the timeout elapses
            AuthError: If the credential is missing or rejected
            RemoteError: If the service answered with an error
            EmptyResponseError: If the service returned no usable text
        """
        if not history:
            raise ValueError("history must contain at least one message")

        snapshot = tuple(history)
        logger.debug(
            "Requesting completion from %s (%d messages)", self.model, len(snapshot)
        )
        try:
            text = await asyncio.wait_for(self._generate(snapshot), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Completion from %s timed out after %ss", self.model, self._timeout)
            raise NetworkError(f"timeout after {self._timeout:g}s") from e

        if not text or not text.strip():
            raise EmptyResponseError(f"{self.model} returned no content")
        return text

    @abstractmethod
    async def _generate(self, history: tuple[Message, ...]) -> str | None:
        """Call the remote service once.

        Args:
            history: Non-empty conversation snapshot

        Returns:
            Raw reply text, or None when the service produced nothing

        Raises:
            ServiceError: Provider failures mapped onto the taxonomy
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "CompletionClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
