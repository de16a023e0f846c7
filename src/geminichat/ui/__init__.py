"""Terminal UI module for geminichat.

Provides a Textual-based TUI that observes a ConversationController.

Module structure (Parnas principle - each module hides a design decision):
- widgets.py: Custom widgets (transcript, input history, typing indicator, log panel)
- formatting.py: Markdown, timestamp and banner text formatting
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes and theme configuration
- logging_handler.py: How log records reach the log panel
- app.py: Application orchestration (user interaction flow)
"""

from .app import ChatApp, run_chat_tui
from .config import LogLevel
from .logging_handler import DebugPanelHandler
from .widgets import (
    ChatHistoryWidget,
    ChatInputBar,
    ChatMessageView,
    DebugPanel,
    ErrorBanner,
    TypingIndicator,
    WelcomeView,
)

__all__ = [
    "ChatApp",
    "ChatHistoryWidget",
    "ChatInputBar",
    "ChatMessageView",
    "DebugPanel",
    "DebugPanelHandler",
    "ErrorBanner",
    "LogLevel",
    "TypingIndicator",
    "WelcomeView",
    "run_chat_tui",
]
