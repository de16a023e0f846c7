"""Text formatting utilities for the TUI.

Hides the details of markdown rendering, timestamp display and text cleanup.
"""

import re
from datetime import datetime, tzinfo

from rich.markdown import Markdown
from rich.text import Text

from .config import LOG_MAX_MESSAGE_LENGTH, MESSAGE_TIME_FORMAT

# Delimiters Rich cannot render; the content between them is kept
_MATH_DELIMITERS = (
    (re.compile(r"\\\(\s*"), ""),
    (re.compile(r"\s*\\\)"), ""),
    (re.compile(r"\\\[\s*"), ""),
    (re.compile(r"\s*\\\]"), ""),
    (re.compile(r"\$\$\s*"), ""),
    # Inline math only: "$5 and $10" stays a pair of prices
    (re.compile(r"(?<![\\$])\$(?![\s\d$])([^$\n]*?[^\s$\\])\$(?!\d)"), r"\1"),
)

_LATEX_SYMBOLS = {
    "times": "x",
    "cdot": "*",
    "pm": "+/-",
    "leq": "<=",
    "geq": ">=",
    "neq": "!=",
    "approx": "~=",
    "infty": "infinity",
    "pi": "pi",
    "ldots": "...",
    "cdots": "...",
}

_LATEX_SYMBOL_RE = re.compile(r"\\(" + "|".join(_LATEX_SYMBOLS) + r")\b")
_LATEX_FRAC_RE = re.compile(r"\\frac\{([^}]*)\}\{([^}]*)\}")
_LATEX_SQRT_RE = re.compile(r"\\sqrt\{([^}]*)\}")
_LATEX_COMMAND_RE = re.compile(r"\\(?:text|textbf|textit|mathrm|mathbf)\{([^}]*)\}")


def clean_latex(text: str) -> str:
    """Convert common LaTeX notation to plain text equivalents.

    Handles the patterns Gemini tends to emit in otherwise plain markdown:
    - \\( ... \\) and \\[ ... \\] math delimiters -> just the content
    - $...$ and $$...$$ math delimiters -> just the content
    - \\frac, \\sqrt and a handful of operators -> ASCII approximations
    """
    for pattern, replacement in _MATH_DELIMITERS:
        text = pattern.sub(replacement, text)

    text = _LATEX_FRAC_RE.sub(r"(\1)/(\2)", text)
    text = _LATEX_SQRT_RE.sub(r"sqrt(\1)", text)
    text = _LATEX_COMMAND_RE.sub(r"\1", text)
    return _LATEX_SYMBOL_RE.sub(lambda m: _LATEX_SYMBOLS[m.group(1)], text)


def render_markdown(text: str) -> Markdown:
    """Render text as markdown with LaTeX cleaned up."""
    return Markdown(clean_latex(text))


def render_plain(text: str, style: str = "") -> Text:
    """Render user text literally: no markup parsing, folded to the width."""
    return Text(text, style=style, overflow="fold")


def format_timestamp(timestamp: datetime, tz: tzinfo | None = None) -> str:
    """Format a message timestamp as wall-clock ``HH:MM``.

    Args:
        timestamp: Timezone-aware instant (messages store UTC)
        tz: Target timezone; the local timezone when None

    Returns:
        Hours and minutes in the target timezone, e.g. "09:05"
    """
    return timestamp.astimezone(tz).strftime(MESSAGE_TIME_FORMAT)


def format_error_banner(error_message: str) -> str:
    """Text shown in the error banner of a failed exchange."""
    return f"Error: {error_message}"


def truncate(text: str, limit: int = LOG_MAX_MESSAGE_LENGTH) -> str:
    """Shorten text to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."
