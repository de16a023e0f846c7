"""Bridge from the standard logging module to the TUI log panel."""

import logging
import threading
from datetime import datetime

from .formatting import truncate
from .widgets import DebugPanel


class DebugPanelHandler(logging.Handler):
    """Logging handler that writes records into a DebugPanel.

    Records emitted on the UI thread are written directly; records from any
    other thread are marshalled onto it with ``App.call_from_thread``.
    """

    def __init__(self, panel: DebugPanel, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._panel = panel
        self._ui_thread = threading.get_ident()
        self.setFormatter(logging.Formatter("%(message)s"))

    @staticmethod
    def component(record: logging.LogRecord) -> str:
        """Short component name: the last part of the logger name."""
        return record.name.rsplit(".", 1)[-1]

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = truncate(self.format(record))
            args = (
                self.component(record),
                message,
                record.levelno,
                datetime.fromtimestamp(record.created),
            )
            if threading.get_ident() == self._ui_thread:
                self._panel.add_entry(*args)
            else:
                self._panel.app.call_from_thread(self._panel.add_entry, *args)
        except Exception:
            self.handleError(record)
