"""UI configuration constants.

Centralizes magic numbers and configuration values for the UI module.
"""

import logging


class LogLevel:
    """Log level constants with numeric values for comparison.

    Values are the standard ``logging`` levels, so records coming from the
    library loggers can be filtered without translation.
    Lower numeric value = more verbose (shows more messages).
    """

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR

    _names = {
        DEBUG: "DEBUG",
        INFO: "INFO",
        WARNING: "WARNING",
        ERROR: "ERROR",
    }

    _from_string = {
        "debug": DEBUG,
        "info": INFO,
        "warning": WARNING,
        "error": ERROR,
    }

    @classmethod
    def name(cls, level: int) -> str:
        """Get the name for a log level.

        Levels between the named ones (e.g. CRITICAL) map to the nearest
        lower name.
        """
        for value in sorted(cls._names, reverse=True):
            if level >= value:
                return cls._names[value]
        return cls._names[cls.DEBUG]

    @classmethod
    def from_string(cls, level_str: str) -> int:
        """Convert string to log level. Returns DEBUG if invalid."""
        return cls._from_string.get(level_str.lower(), cls.DEBUG)


# Input history configuration
INPUT_HISTORY_MAX_SIZE = 100  # Maximum entries in input history

# Chat display configuration
MESSAGE_TIME_FORMAT = "%H:%M"  # Local wall-clock time shown on each message
USER_LABEL = "You"
ASSISTANT_LABEL = "Gemini"

# Typing indicator
TYPING_INTERVAL = 0.4  # Seconds between animation frames

# Log panel configuration
LOG_TIMESTAMP_FORMAT = "%H:%M:%S"
LOG_MAX_MESSAGE_LENGTH = 500  # Characters before truncating log messages

WELCOME_TITLE = "Welcome to Gemini Chat"
WELCOME_LINES = (
    "Start a conversation by typing a message below.",
    "",
    "Ctrl+J sends, Up/Down recalls earlier input.",
    "Ctrl+K clears the chat, Ctrl+R copies the last reply.",
)
