"""Main Textual TUI application.

Orchestrates the UI components. The app is a pure observer of a
ConversationController: user actions are forwarded to the controller and
every published state is rendered, nothing else changes the transcript.
"""

import asyncio
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header

from ..conversation import ConversationController, ConversationState
from .config import LogLevel
from .logging_handler import DebugPanelHandler
from .styles import APP_CSS
from .themes import GEMINI_NIGHT
from .widgets import (
    ChatHistoryWidget,
    ChatInputBar,
    DebugPanel,
    ErrorBanner,
    TypingIndicator,
    WelcomeView,
)

logger = logging.getLogger(__name__)

# Records from every geminichat module reach the log panel through this logger
PACKAGE_LOGGER = "geminichat"


class ChatApp(App):
    """Textual TUI for chatting with a completion service."""

    CSS = APP_CSS
    TITLE = "Gemini Chat"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        # Priority so the focused TextArea does not consume them
        Binding("ctrl+k", "clear_chat", "Clear Chat", priority=True),
        Binding("ctrl+r", "copy_last_response", "Copy Reply", priority=True),
        Binding("ctrl+d", "toggle_debug", "Log", priority=True),
        Binding("ctrl+l", "clear_log", "Clear Log", priority=True),
    ]

    def __init__(
        self,
        controller: ConversationController,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._log_level = log_level
        self._unsubscribe = None
        self._log_handler: DebugPanelHandler | None = None
        self._previous_log_level: int | None = None

    @property
    def controller(self) -> ConversationController:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="body"):
            with Vertical(id="conversation"):
                yield WelcomeView(id="welcome")
                yield ChatHistoryWidget(id="chat-history")
                yield TypingIndicator(id="typing")
                yield ErrorBanner(id="error-banner")
            yield DebugPanel(id="debug-panel")

        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Called when app is mounted."""
        self.register_theme(GEMINI_NIGHT)
        self.theme = GEMINI_NIGHT.name
        self.sub_title = self._controller.client.model

        self._install_log_handler()

        self._unsubscribe = self._controller.subscribe(self.render_state)
        self.render_state(self._controller.state)
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()
        logger.info("TUI started with model %s", self._controller.client.model)

    def on_unmount(self) -> None:
        """Detach from the controller and the logging tree."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._log_handler is not None:
            package_logger = logging.getLogger(PACKAGE_LOGGER)
            package_logger.removeHandler(self._log_handler)
            self._log_handler = None
            if self._previous_log_level is not None:
                package_logger.setLevel(self._previous_log_level)
                self._previous_log_level = None

    def _install_log_handler(self) -> None:
        """Route geminichat log records into the log panel.

        The panel starts hidden; --log-level shows it with that threshold.
        """
        log_panel = self.query_one("#debug-panel", DebugPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        if package_logger.getEffectiveLevel() > log_panel.log_level:
            self._previous_log_level = package_logger.level
            package_logger.setLevel(log_panel.log_level)

        self._log_handler = DebugPanelHandler(log_panel)
        package_logger.addHandler(self._log_handler)

    def render_state(self, state: ConversationState) -> None:
        """Render one conversation state. Subscribed to the controller."""
        self.query_one("#chat-history", ChatHistoryWidget).render_state(state)
        self.query_one("#welcome", WelcomeView).display = state.is_idle
        self.query_one("#chat-history", ChatHistoryWidget).display = not state.is_idle

        typing = self.query_one("#typing", TypingIndicator)
        if state.is_pending:
            typing.start()
        else:
            typing.stop()

        banner = self.query_one("#error-banner", ErrorBanner)
        if state.is_failed:
            banner.show_error(state.error_message)
        else:
            banner.clear_error()

        self.query_one("#chat-input-bar", ChatInputBar).set_busy(state.is_pending)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Forward user input to the controller."""
        self._controller.send_message(event.value)

    def action_clear_chat(self) -> None:
        """Clear the conversation."""
        self._controller.clear_chat()
        self.notify("Chat cleared", timeout=2)

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        response = chat.get_last_response()
        if response:
            self.copy_to_clipboard(response)
            self.notify("Reply copied")
        else:
            self.notify("No reply to copy", severity="warning")

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_clear_log(self) -> None:
        """Clear the log panel."""
        self.query_one("#debug-panel", DebugPanel).clear()


async def run_chat_tui(
    controller: ConversationController,
    log_level: str | None = None,
) -> None:
    """Run the Textual TUI and close the controller when it exits.

    Args:
        controller: Conversation to display and drive
        log_level: Log level for panel (debug/info/warning/error), None to hide
    """
    app = ChatApp(controller=controller, log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.debug("TUI interrupted")
    finally:
        await controller.close()
