"""Unit tests for the conversation module."""
import asyncio
import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from conftest import GatedClient, ScriptedClient, StateRecorder, SteppingClock, wait_until
from geminichat.conversation import ConversationController, ConversationState, ConversationStatus
from geminichat.llm import AuthError, EmptyResponseError, Message, NetworkError, RemoteError


def texts(state: ConversationState) -> list[str]:
    return [message.text for message in state.history]


class TestConversationState:
    """Tests for the ConversationState tagged variant."""

    def test_idle_has_no_history(self):
        """Test that the idle state carries nothing."""
        state = ConversationState.idle()

        assert state.status is ConversationStatus.IDLE
        assert state.history == ()
        assert state.error_message is None
        assert state.last_message is None

    def test_idle_with_history_fails(self):
        """Test that idle cannot carry history."""
        with pytest.raises(ValidationError):
            ConversationState(status=ConversationStatus.IDLE, history=(Message.user("Hi"),))

    def test_pending_requires_history(self):
        """Test that non-idle states need at least one message."""
        with pytest.raises(ValidationError):
            ConversationState.pending(())

    def test_failed_requires_error_message(self):
        """Test that failed needs a non-blank error message."""
        with pytest.raises(ValidationError):
            ConversationState.failed((Message.user("Hi"),), "  ")

    def test_only_failed_carries_error(self):
        """Test that settled rejects an error message."""
        with pytest.raises(ValidationError):
            ConversationState(
                status=ConversationStatus.SETTLED,
                history=(Message.user("Hi"),),
                error_message="NetworkError: down"
            )

    def test_state_is_immutable(self):
        """Test that observers cannot modify a state they receive."""
        state = ConversationState.pending((Message.user("Hi"),))

        with pytest.raises(ValidationError):
            state.status = ConversationStatus.IDLE  # type: ignore
        assert isinstance(state.history, tuple)

    def test_helpers_follow_status(self):
        """Test the is_* helpers and last_message."""
        user = Message.user("Hi")
        reply = Message.assistant("Hello!")
        state = ConversationState.settled((user, reply))

        assert state.is_settled
        assert not (state.is_idle or state.is_pending or state.is_failed)
        assert state.last_message == reply


class TestSendMessage:
    """Tests for ConversationController.send_message."""

    @pytest.mark.asyncio
    async def test_initial_state_is_idle(self):
        """Test that a new controller starts idle."""
        controller = ConversationController(ScriptedClient())

        assert controller.state.is_idle
        assert controller.history == ()
        assert controller.generation == 0

    @pytest.mark.asyncio
    async def test_successful_exchange(self, recorder, clock):
        """Test that one exchange publishes exactly PENDING then SETTLED."""
        client = ScriptedClient("Hello!")
        controller = ConversationController(client, clock=clock)
        controller.subscribe(recorder)

        controller.send_message("Hi")

        # PENDING is published before send_message returns
        assert recorder.statuses == ["pending"]
        assert texts(controller.state) == ["Hi"]
        assert controller.state.last_message.is_user

        await controller.drain()

        assert recorder.statuses == ["pending", "settled"]
        assert texts(controller.state) == ["Hi", "Hello!"]
        assert [m.is_user for m in controller.history] == [True, False]
        assert len(client.calls) == 1
        assert [m.text for m in client.calls[0]] == ["Hi"]

    @pytest.mark.asyncio
    async def test_client_receives_full_history(self, clock):
        """Test that every call gets the whole conversation so far."""
        client = ScriptedClient("one", "two")
        controller = ConversationController(client, clock=clock)

        controller.send_message("first")
        await controller.drain()
        controller.send_message("second")
        await controller.drain()

        assert [m.text for m in client.calls[1]] == ["first", "one", "second"]
        assert texts(controller.state) == ["first", "one", "second", "two"]

    @pytest.mark.asyncio
    async def test_timestamps_come_from_clock(self):
        """Test that messages are stamped with the injected clock."""
        clock = SteppingClock()
        expected_first = clock._now
        controller = ConversationController(ScriptedClient("Hello!"), clock=clock)

        controller.send_message("Hi")
        await controller.drain()

        user, reply = controller.history
        assert user.timestamp == expected_first
        assert reply.timestamp > user.timestamp

    @pytest.mark.asyncio
    async def test_text_is_kept_verbatim(self):
        """Test that surrounding whitespace of non-blank input is preserved."""
        controller = ConversationController(ScriptedClient())

        controller.send_message("  two  words \n")
        await controller.drain()

        assert controller.history[0].text == "  two  words \n"

    @given(st.text(alphabet=" \t\r\n  ", max_size=12))
    def test_blank_input_is_ignored(self, text: str):
        """Property test: blank input changes nothing and notifies nobody."""
        client = ScriptedClient()
        controller = ConversationController(client)
        recorder = StateRecorder()
        controller.subscribe(recorder)

        # No event loop is needed for a no-op
        controller.send_message(text)

        assert controller.state.is_idle
        assert controller.generation == 0
        assert recorder.states == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_blank_input_while_settled_is_ignored(self, recorder):
        """Test that blank input leaves a settled conversation alone."""
        controller = ConversationController(ScriptedClient("Hello!"))
        controller.send_message("Hi")
        await controller.drain()
        controller.subscribe(recorder)
        before = controller.state

        controller.send_message("   ")

        assert controller.state == before
        assert recorder.states == []

    def test_send_without_running_loop_fails(self, recorder):
        """Test that sending outside an event loop fails instead of raising."""
        client = ScriptedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("Hi")

        assert recorder.statuses == ["pending", "failed"]
        assert controller.state.error_message == "RuntimeError: no running event loop"
        assert [m.text for m in controller.history] == ["Hi"]
        assert client.calls == []


class TestFailures:
    """Tests for failed exchanges."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (NetworkError("connection refused"), "NetworkError: connection refused"),
            (AuthError("API key not valid"), "AuthError: API key not valid"),
            (RemoteError("quota exceeded", status_code=429), "RemoteError (429): quota exceeded"),
            (EmptyResponseError("no candidates"), "EmptyResponseError: no candidates"),
        ],
    )
    async def test_service_error_becomes_failed(self, recorder, error, expected):
        """Test that a client failure keeps the user message and reports the kind."""
        controller = ConversationController(ScriptedClient(error))
        controller.subscribe(recorder)

        controller.send_message("Hi")
        await controller.drain()

        assert recorder.statuses == ["pending", "failed"]
        assert controller.state.is_failed
        assert texts(controller.state) == ["Hi"]
        assert controller.state.error_message == expected

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failed(self, caplog):
        """Test that a non-ServiceError still surfaces as FAILED."""
        controller = ConversationController(ScriptedClient(RuntimeError("boom")))

        with caplog.at_level(logging.ERROR, logger="geminichat.conversation.controller"):
            controller.send_message("Hi")
            await controller.drain()

        assert controller.state.is_failed
        assert controller.state.error_message == "RuntimeError: boom"
        assert "unexpected error" in caplog.text

    @pytest.mark.asyncio
    async def test_blank_reply_becomes_empty_response(self):
        """Test that a whitespace-only reply is a failure, not a message."""
        controller = ConversationController(ScriptedClient("   "))

        controller.send_message("Hi")
        await controller.drain()

        assert controller.state.is_failed
        assert controller.state.error_message.startswith("EmptyResponseError:")

    @pytest.mark.asyncio
    async def test_timeout_becomes_network_error(self):
        """Test that a client that never answers fails after its timeout."""
        client = GatedClient(timeout=0.01)
        controller = ConversationController(client)

        controller.send_message("Hi")
        await controller.drain()

        assert controller.state.is_failed
        assert controller.state.error_message == "NetworkError: timeout after 0.01s"

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, recorder):
        """Test that sending again after a failure continues the same history."""
        controller = ConversationController(ScriptedClient(NetworkError("down"), "Hello!"))
        controller.subscribe(recorder)

        controller.send_message("Hi")
        await controller.drain()
        controller.send_message("Hi again")

        assert controller.state.is_pending
        assert controller.state.error_message is None
        await controller.drain()

        assert recorder.statuses == ["pending", "failed", "pending", "settled"]
        assert texts(controller.state) == ["Hi", "Hi again", "Hello!"]


class TestClearChat:
    """Tests for ConversationController.clear_chat."""

    @pytest.mark.asyncio
    async def test_clear_discards_history(self, recorder):
        """Test that clearing a settled conversation returns to IDLE."""
        controller = ConversationController(ScriptedClient("Hello!"))
        controller.send_message("Hi")
        await controller.drain()
        controller.subscribe(recorder)

        controller.clear_chat()

        assert controller.state.is_idle
        assert controller.history == ()
        assert recorder.statuses == ["idle"]

    @pytest.mark.asyncio
    async def test_clear_after_failure(self, recorder):
        """Test that clearing a failed exchange drops the error and the history."""
        controller = ConversationController(ScriptedClient(NetworkError("timeout")))
        controller.send_message("Tell me more")
        await controller.drain()

        assert controller.state.is_failed
        assert "timeout" in controller.state.error_message
        assert texts(controller.state) == ["Tell me more"]

        controller.subscribe(recorder)
        controller.clear_chat()

        assert controller.state.is_idle
        assert controller.history == ()
        assert controller.state.error_message is None
        assert recorder.statuses == ["idle"]

    def test_clear_when_idle_still_publishes(self, recorder):
        """Test that clearing an idle conversation notifies observers."""
        controller = ConversationController(ScriptedClient())
        controller.subscribe(recorder)

        controller.clear_chat()

        assert recorder.statuses == ["idle"]
        assert controller.generation == 1

    @pytest.mark.asyncio
    async def test_clear_while_pending_discards_result(self, recorder):
        """Test that a completion finishing after clear_chat is dropped."""
        client = GatedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("Hi")
        await wait_until(lambda: len(client.calls) == 1)
        controller.clear_chat()
        client.resolve(0, "Hello!")
        await controller.drain()

        assert controller.state.is_idle
        assert recorder.statuses == ["pending", "idle"]

    @pytest.mark.asyncio
    async def test_clear_while_pending_discards_failure(self, recorder):
        """Test that a failure finishing after clear_chat is dropped too."""
        client = GatedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("Hi")
        await wait_until(lambda: len(client.calls) == 1)
        controller.clear_chat()
        client.fail(0, NetworkError("down"))
        await controller.drain()

        assert controller.state.is_idle
        assert recorder.statuses == ["pending", "idle"]

    @pytest.mark.asyncio
    async def test_send_after_clear_starts_fresh(self):
        """Test that the first message after a clear starts a new history."""
        controller = ConversationController(ScriptedClient("a", "b"))
        controller.send_message("first")
        await controller.drain()
        controller.clear_chat()

        controller.send_message("second")
        await controller.drain()

        assert texts(controller.state) == ["second", "b"]


class TestSupersededRequests:
    """Tests for overlapping sends."""

    @pytest.mark.asyncio
    async def test_newer_send_supersedes_older(self, recorder):
        """Test that only the latest request's result is applied."""
        client = GatedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("A")
        controller.send_message("B")
        assert texts(controller.state) == ["A", "B"]

        await wait_until(lambda: len(client.calls) == 2)
        assert [m.text for m in client.calls[1]] == ["A", "B"]

        client.resolve(1, "reply to B")
        await wait_until(lambda: controller.state.is_settled)
        client.resolve(0, "reply to A")
        await controller.drain()

        assert texts(controller.state) == ["A", "B", "reply to B"]
        assert recorder.statuses == ["pending", "pending", "settled"]

    @pytest.mark.asyncio
    async def test_stale_result_arriving_first_is_dropped(self, recorder):
        """Test that an older result arriving first leaves the state PENDING."""
        client = GatedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("A")
        controller.send_message("B")
        await wait_until(lambda: len(client.calls) == 2)

        client.resolve(0, "reply to A")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert controller.state.is_pending

        client.resolve(1, "reply to B")
        await controller.drain()

        assert texts(controller.state) == ["A", "B", "reply to B"]
        assert recorder.statuses == ["pending", "pending", "settled"]


class TestObservers:
    """Tests for subscribe/unsubscribe and delivery."""

    def test_listeners_called_in_subscription_order(self):
        """Test that every listener sees every transition, in order."""
        calls = []
        controller = ConversationController(ScriptedClient())
        controller.subscribe(lambda state: calls.append(("first", state.status)))
        controller.subscribe(lambda state: calls.append(("second", state.status)))

        controller.clear_chat()

        assert calls == [("first", ConversationStatus.IDLE), ("second", ConversationStatus.IDLE)]

    def test_unsubscribe_stops_delivery(self, recorder):
        """Test that the returned function unsubscribes."""
        controller = ConversationController(ScriptedClient())
        unsubscribe = controller.subscribe(recorder)

        controller.clear_chat()
        unsubscribe()
        controller.clear_chat()

        assert recorder.statuses == ["idle"]

    def test_unsubscribe_unknown_listener_is_ignored(self, recorder):
        """Test that removing a listener twice is harmless."""
        controller = ConversationController(ScriptedClient())
        unsubscribe = controller.subscribe(recorder)

        unsubscribe()
        unsubscribe()
        controller.unsubscribe(lambda state: None)

    def test_duplicate_subscription_delivers_once(self, recorder):
        """Test that subscribing the same listener twice has no extra effect."""
        controller = ConversationController(ScriptedClient())
        controller.subscribe(recorder)
        controller.subscribe(recorder)

        controller.clear_chat()

        assert recorder.statuses == ["idle"]

    def test_failing_listener_does_not_stop_delivery(self, recorder, caplog):
        """Test that a listener raising is logged and the others still run."""
        def broken(state):
            raise ValueError("render failed")

        controller = ConversationController(ScriptedClient())
        controller.subscribe(broken)
        controller.subscribe(recorder)

        with caplog.at_level(logging.ERROR, logger="geminichat.conversation.controller"):
            controller.clear_chat()

        assert recorder.statuses == ["idle"]
        assert controller.state.is_idle
        assert "render failed" in caplog.text

    @pytest.mark.asyncio
    async def test_listener_triggering_transition_keeps_order(self):
        """Test that a listener clearing on SETTLED does not interleave deliveries."""
        controller = ConversationController(ScriptedClient("Hello!"))
        first = StateRecorder()
        second = StateRecorder()

        def clear_on_settled(state):
            first(state)
            if state.is_settled:
                controller.clear_chat()

        controller.subscribe(clear_on_settled)
        controller.subscribe(second)

        controller.send_message("Hi")
        await controller.drain()

        assert first.statuses == ["pending", "settled", "idle"]
        assert second.statuses == ["pending", "settled", "idle"]
        assert controller.state.is_idle

    @pytest.mark.asyncio
    async def test_unsubscribe_during_delivery(self):
        """Test that a listener removed mid-delivery gets nothing more."""
        controller = ConversationController(ScriptedClient())
        late = StateRecorder()

        def remove_late(state):
            controller.unsubscribe(late)

        controller.subscribe(remove_late)
        controller.subscribe(late)

        controller.clear_chat()

        assert late.states == []


class TestLifecycle:
    """Tests for drain and close."""

    @pytest.mark.asyncio
    async def test_close_cancels_pending_and_closes_client(self, recorder):
        """Test that closing mid-request discards the request and closes the client."""
        client = GatedClient()
        controller = ConversationController(client)
        controller.subscribe(recorder)

        controller.send_message("Hi")
        await wait_until(lambda: len(client.calls) == 1)
        await controller.close()

        assert client.closed
        assert recorder.statuses == ["pending"]

        # Listeners were dropped
        controller.clear_chat()
        assert recorder.statuses == ["pending"]

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        """Test that async with closes the controller."""
        client = ScriptedClient("Hello!")

        async with ConversationController(client) as controller:
            controller.send_message("Hi")
            await controller.drain()
            assert controller.state.is_settled

        assert client.closed

    @pytest.mark.asyncio
    async def test_drain_without_tasks_returns(self):
        """Test that draining an idle controller does not block."""
        controller = ConversationController(ScriptedClient())
        await asyncio.wait_for(controller.drain(), timeout=1)


operation = st.one_of(
    st.tuples(st.just("send"), st.text(min_size=1, max_size=8)),
    st.tuples(st.just("clear"), st.none()),
    st.tuples(st.just("drain"), st.none()),
)
reply = st.one_of(
    st.text(alphabet="abc xyz", min_size=1, max_size=8).filter(str.strip),
    st.builds(NetworkError, st.just("down")),
    st.builds(RemoteError, st.just("oops"), st.just(500)),
)


class TestHistoryProperties:
    """Property tests over arbitrary operation sequences."""

    @settings(max_examples=50, deadline=None)
    @given(
        st.lists(operation, max_size=12),
        st.lists(reply, max_size=12),
    )
    def test_history_only_grows_until_cleared(self, operations, replies):
        """Property test: every published history extends the previous one unless idle."""
        recorder = StateRecorder()

        async def scenario():
            controller = ConversationController(ScriptedClient(*replies))
            controller.subscribe(recorder)
            for name, text in operations:
                if name == "send":
                    controller.send_message(text)
                elif name == "clear":
                    controller.clear_chat()
                else:
                    await controller.drain()
            await controller.drain()
            return controller.state

        final = asyncio.run(scenario())

        previous = ConversationState.idle()
        for state in recorder.states:
            if not state.is_idle:
                assert state.history[: len(previous.history)] == previous.history
            if state.is_settled:
                assert not state.last_message.is_user
            if state.is_pending or state.is_failed:
                assert state.last_message.is_user
            previous = state

        assert not final.is_pending
        if recorder.states:
            assert recorder.states[-1] == final

    @settings(max_examples=25, deadline=None)
    @given(st.lists(st.text(min_size=1, max_size=10).filter(str.strip), min_size=1, max_size=6))
    def test_n_exchanges_give_2n_alternating_messages(self, messages):
        """Property test: N successful exchanges leave 2N alternating messages."""
        async def scenario():
            controller = ConversationController(ScriptedClient())
            for text in messages:
                controller.send_message(text)
                await controller.drain()
            return controller.state

        state = asyncio.run(scenario())

        assert state.is_settled
        assert len(state.history) == 2 * len(messages)
        assert [m.is_user for m in state.history] == [True, False] * len(messages)
        assert [m.text for m in state.history[::2]] == messages
