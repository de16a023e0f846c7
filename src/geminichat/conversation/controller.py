"""Conversation controller: the single owner of a conversation's state.

Hides:
- How user input is serialized against in-flight completions
- How stale completions are detected (a monotonic generation counter)
- How transitions reach observers (an explicit list of callbacks)

The controller is not thread-safe. ``send_message`` and ``clear_chat`` must
be called from the thread running the asyncio event loop the completions
are scheduled on.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..llm.base import CompletionClient
from ..llm.errors import EmptyResponseError, ServiceError
from ..llm.models import Message, utc_now
from .state import ConversationState

logger = logging.getLogger(__name__)

Listener = Callable[[ConversationState], None]


class ConversationController:
    """Owns the ordered message history and its loading/error status.

    Every transition is published to all subscribed listeners exactly once,
    in order. Listeners receive immutable ``ConversationState`` values.

    Usage:
        controller = ConversationController(client)
        unsubscribe = controller.subscribe(render)
        controller.send_message("Hi")   # publishes PENDING, returns at once
        await controller.drain()        # SETTLED or FAILED has been published
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        clock: Callable[[], datetime] | None = None
    ) -> None:
        """Initialize the controller in the idle state.

        Args:
            client: Completion client that answers user messages
            clock: Returns the current UTC time; used for message timestamps
        """
        self._client = client
        self._clock = clock or utc_now
        self._state = ConversationState.idle()
        self._generation = 0
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        # Transitions raised while listeners are being notified wait here
        self._outbox: deque[ConversationState] = deque()
        self._notifying = False

    @property
    def state(self) -> ConversationState:
        """Current conversation state."""
        return self._state

    @property
    def history(self) -> tuple[Message, ...]:
        """Current message history, oldest first."""
        return self._state.history

    @property
    def generation(self) -> int:
        """Identifier of the most recent send or clear."""
        return self._generation

    @property
    def client(self) -> CompletionClient:
        return self._client

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for every subsequent transition.

        Args:
            listener: Called with the new state after each transition

        Returns:
            A function that unsubscribes the listener
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        """Stop delivering transitions to a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def send_message(self, text: str) -> None:
        """Send a user message and request the assistant's reply.

        Blank input (empty or whitespace only) is ignored. Otherwise the text
        is appended verbatim as a user message, the controller enters PENDING
        and the completion is scheduled on the running event loop. This
        method returns as soon as PENDING has been published.

        Without a running event loop nothing can be scheduled: the exchange
        goes straight from PENDING to FAILED.

        Args:
            text: The user's message
        """
        if not text or not text.strip():
            logger.debug("Ignoring blank message")
            return

        message = Message.user(text, timestamp=self._clock())
        history = self._state.history + (message,)
        self._generation += 1
        generation = self._generation

        self._transition(ConversationState.pending(history))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if generation != self._generation:
                return
            error_message = "RuntimeError: no running event loop"
            logger.warning("Exchange failed: %s", error_message)
            self._transition(ConversationState.failed(history, error_message))
            return

        task = loop.create_task(self._complete(generation, history))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def clear_chat(self) -> None:
        """Discard all history and return to IDLE.

        Safe while a request is pending: its result will be dropped.
        """
        self._generation += 1
        logger.info("Clearing conversation (%d messages)", len(self._state.history))
        self._transition(ConversationState.idle())

    async def drain(self) -> None:
        """Wait until every scheduled completion has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """End the conversation session.

        Outstanding completions are cancelled and their results discarded,
        listeners are dropped and the client is closed.
        """
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
        self._listeners.clear()
        await self._client.close()

    async def __aenter__(self) -> "ConversationController":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _complete(self, generation: int, history: tuple[Message, ...]) -> None:
        """Run one completion and apply its outcome if it is still current."""
        try:
            reply = await self._client.complete(history)
            if not isinstance(reply, str) or not reply.strip():
                raise EmptyResponseError(f"{self._client.model} returned no content")
            answer = Message.assistant(reply, timestamp=self._clock())
        except ServiceError as e:
            outcome = ConversationState.failed(history, e.describe())
        except Exception as e:
            logger.exception("Completion client raised an unexpected error")
            outcome = ConversationState.failed(history, f"{type(e).__name__}: {e}")
        else:
            outcome = ConversationState.settled(history + (answer,))

        if generation != self._generation:
            logger.debug(
                "Discarding stale %s result (generation %d, current %d)",
                outcome.status.value, generation, self._generation
            )
            return

        if outcome.is_failed:
            logger.warning("Exchange failed: %s", outcome.error_message)
        self._transition(outcome)

    def _transition(self, state: ConversationState) -> None:
        """Make ``state`` current and publish it.

        A listener that triggers another transition does not interleave
        deliveries: the new state is queued and published after the current
        one has reached every listener.
        """
        self._state = state
        self._outbox.append(state)
        if self._notifying:
            return

        self._notifying = True
        try:
            while self._outbox:
                current = self._outbox.popleft()
                for listener in list(self._listeners):
                    # Skip listeners removed earlier in this delivery
                    if listener not in self._listeners:
                        continue
                    try:
                        listener(current)
                    except Exception:
                        logger.exception("Conversation listener %r failed", listener)
        finally:
            self._notifying = False
