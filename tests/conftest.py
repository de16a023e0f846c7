"""Pytest configuration and shared fixtures."""
import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from geminichat.conversation import ConversationState
from geminichat.llm.base import DEFAULT_TIMEOUT, CompletionClient
from geminichat.llm.models import Message


class ScriptedClient(CompletionClient):
    """Completion client that answers from a script.

    Each script entry is either reply text or an exception to raise.
    When the script runs out every call answers "ok".
    """

    def __init__(self, *replies: str | BaseException, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        self._replies = list(replies)
        self.calls: list[tuple[Message, ...]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "scripted-model"

    async def _generate(self, history: tuple[Message, ...]) -> str | None:
        self.calls.append(history)
        reply = self._replies.pop(0) if self._replies else "ok"
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def close(self) -> None:
        self.closed = True


class GatedClient(CompletionClient):
    """Completion client whose calls stay in flight until the test resolves them."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        self.calls: list[tuple[Message, ...]] = []
        self._futures: list[asyncio.Future] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "gated-model"

    async def _generate(self, history: tuple[Message, ...]) -> str | None:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(history)
        self._futures.append(future)
        return await future

    def resolve(self, index: int, reply: str) -> None:
        self._futures[index].set_result(reply)

    def fail(self, index: int, error: BaseException) -> None:
        self._futures[index].set_exception(error)

    async def close(self) -> None:
        self.closed = True


class StateRecorder:
    """Listener that keeps every state it receives."""

    def __init__(self) -> None:
        self.states: list[ConversationState] = []

    def __call__(self, state: ConversationState) -> None:
        self.states.append(state)

    @property
    def statuses(self) -> list[str]:
        return [state.status.value for state in self.states]


class SteppingClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        now = self._now
        self._now += timedelta(seconds=1)
        return now


async def wait_until(condition: Callable[[], bool], attempts: int = 200) -> None:
    """Yield to the event loop until ``condition`` holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def recorder():
    """Return a fresh state recorder."""
    return StateRecorder()


@pytest.fixture
def clock():
    """Return a deterministic clock."""
    return SteppingClock()


@pytest.fixture
def clean_env(monkeypatch):
    """Keep provider settings from the developer's shell out of the tests."""
    for name in (
        "LLM_PROVIDER",
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
        "OPENAI_API_KEY",
        "OPENAI_CHAT_MODEL",
        "OPENAI_BASE_URL",
        "DEEPSEEK_API_KEY",
        "CHAT_SYSTEM_PROMPT",
        "CHAT_TIMEOUT",
        "CHAT_TEMPERATURE",
    ):
        monkeypatch.delenv(name, raising=False)
