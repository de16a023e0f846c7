"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Incremental transcript rendering from conversation states
- Welcome view, typing indicator and error banner
- Log rendering and scrolling
"""

from datetime import datetime
from itertools import cycle

from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message as TextualMessage
from textual.widgets import Button, Markdown, RichLog, Static, TextArea

from ..conversation import ConversationState
from ..llm.models import Message
from .config import (
    ASSISTANT_LABEL,
    INPUT_HISTORY_MAX_SIZE,
    LOG_TIMESTAMP_FORMAT,
    TYPING_INTERVAL,
    USER_LABEL,
    WELCOME_LINES,
    WELCOME_TITLE,
    LogLevel,
)
from .formatting import clean_latex, format_error_banner, format_timestamp, render_plain


class ChatMessageView(Vertical):
    """One rendered message: a header with author and time, then the body.

    Clicking the message copies its raw text to the clipboard.
    """

    def __init__(self, message: Message, *args, **kwargs) -> None:
        role_class = "user-message" if message.is_user else "assistant-message"
        super().__init__(*args, classes=f"chat-message {role_class}", **kwargs)
        self._message = message

    @property
    def message(self) -> Message:
        return self._message

    def compose(self):
        label = USER_LABEL if self._message.is_user else ASSISTANT_LABEL
        icon = ">" if self._message.is_user else "<"
        timestamp = format_timestamp(self._message.timestamp)
        yield Static(f"{icon} {label} [{timestamp}]", classes="message-header", markup=False)

        if self._message.is_user:
            # User text is shown literally
            yield Static(render_plain(self._message.text), classes="message-content")
        else:
            yield Markdown(clean_latex(self._message.text), classes="message-content")

    def on_click(self, event: Click) -> None:
        """Copy message text to the clipboard when clicked."""
        event.stop()
        self.app.copy_to_clipboard(self._message.text)
        self.app.notify("Copied to clipboard", timeout=2)


class WelcomeView(Static):
    """Placeholder shown while the transcript is empty."""

    def on_mount(self) -> None:
        text = Text()
        text.append(WELCOME_TITLE, style="bold")
        text.append("\n\n")
        text.append("\n".join(WELCOME_LINES), style="dim")
        self.update(text)


class TypingIndicator(Static):
    """Animated "typing" line shown while a reply is pending."""

    FRAMES = (".", "..", "...")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._frames = cycle(self.FRAMES)
        self._timer = None
        self.display = False

    def on_mount(self) -> None:
        self._timer = self.set_interval(TYPING_INTERVAL, self._advance, pause=not self.display)

    def _advance(self) -> None:
        self.update(f"{ASSISTANT_LABEL} is typing{next(self._frames)}")

    def start(self) -> None:
        """Show the indicator and start animating."""
        if self.display:
            return
        self._advance()
        self.display = True
        if self._timer is not None:
            self._timer.resume()

    def stop(self) -> None:
        """Hide the indicator."""
        self.display = False
        if self._timer is not None:
            self._timer.pause()


class ErrorBanner(Static):
    """Banner describing the failure of the last exchange."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._text = ""
        self.display = False

    @property
    def text(self) -> str:
        """Banner text, empty while hidden."""
        return self._text

    def show_error(self, error_message: str) -> None:
        self._text = format_error_banner(error_message)
        self.update(Text(self._text))
        self.display = True

    def clear_error(self) -> None:
        self._text = ""
        self.update("")
        self.display = False


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button.

    While busy the Send button is disabled and submissions are ignored;
    the text area stays editable so the next message can be drafted.
    """

    class Submitted(TextualMessage):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1
        self._busy = False

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        # Disable cursor line highlighting to remove visual artifacts
        text_area.highlight_cursor_line = False

    @property
    def busy(self) -> bool:
        return self._busy

    def set_busy(self, busy: bool) -> None:
        """Enable or disable sending."""
        self._busy = busy
        self.query_one("#send-btn", Button).disabled = busy

    @property
    def history(self) -> list[str]:
        """Previously submitted inputs, oldest first."""
        return list(self._history)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals (terminal doesn't pass
        ctrl/shift modifiers with Enter). Use ctrl+j as the submit shortcut.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:  # Up
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:  # Down
            if self._history_index == -1:
                return
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _remember(self, value: str) -> None:
        if not self._history or self._history[-1] != value:
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1

    def _submit(self) -> None:
        if self._busy:
            return
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text
        if not value.strip():
            return
        self._remember(value)
        text_area.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class ChatHistoryWidget(VerticalScroll):
    """Scrollable transcript that follows the conversation state.

    Rendering is incremental: history only ever grows until it is cleared,
    so each state mounts just the messages not yet shown. A history that no
    longer extends the rendered one (after a clear) resets the view.
    """

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation history"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._rendered: list[Message] = []

    @property
    def rendered_messages(self) -> tuple[Message, ...]:
        return tuple(self._rendered)

    def render_state(self, state: ConversationState) -> None:
        """Bring the transcript in line with ``state.history``."""
        history = state.history
        count = len(self._rendered)
        if len(history) < count or list(history[:count]) != self._rendered:
            self.clear_history()
            count = 0

        new_messages = history[count:]
        if not new_messages:
            return

        self.mount_all([ChatMessageView(message) for message in new_messages])
        self._rendered.extend(new_messages)
        self.border_subtitle = f"{len(self._rendered)} messages"
        self.scroll_end(animate=False)

    def get_last_response(self) -> str | None:
        """Get the last assistant response."""
        for message in reversed(self._rendered):
            if not message.is_user:
                return message.text
        return None

    def clear_history(self) -> None:
        """Remove every rendered message."""
        self._rendered.clear()
        self.remove_children()
        self.border_subtitle = "Conversation history"


class DebugPanel(RichLog):
    """Log panel for real-time tracing with level filtering.

    Shows timestamped records from all geminichat loggers.
    Supports standard log levels: DEBUG < INFO < WARNING < ERROR.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    LEVEL_COLORS = {
        LogLevel.DEBUG: "dim white",
        LogLevel.INFO: "cyan",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    COMPONENT_COLORS = {
        "TUI": "cyan",
        "controller": "green",
        "gemini": "magenta",
        "openai": "bright_blue",
        "base": "bright_magenta",
        "cli": "yellow",
    }

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=False,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level
        self.display = False

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def add_entry(
        self,
        component: str,
        message: str,
        level: int = LogLevel.DEBUG,
        when: datetime | None = None
    ) -> None:
        """Add a log entry if it meets the current level threshold.

        Args:
            component: Short component name (TUI, controller, gemini, ...)
            message: Log message, written literally
            level: Numeric log level
            when: Time of the event; now when None
        """
        if level < self._log_level:
            return

        timestamp = (when or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)
        level_name = LogLevel.name(level)
        level_color = self.LEVEL_COLORS.get(LogLevel.from_string(level_name), "white")

        line = Text()
        line.append(timestamp, style="dim")
        line.append(" ")
        line.append(f"{level_name:<7}", style=level_color)
        line.append(f"[{component}]", style=self.COMPONENT_COLORS.get(component, "white"))
        line.append(" ")
        line.append(message)
        self.write(line)

    def show(self) -> None:
        """Show the log panel."""
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        """Hide the log panel."""
        self.display = False
        self._update_subtitle()

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
        else:
            self.show()
        return bool(self.display)
