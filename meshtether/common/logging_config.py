from __future__ import annotations

import logging
import sys
import threading
import time
import weakref
from collections import deque

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Add Logger.trace if missing
if not hasattr(logging.Logger, "trace"):

    def _trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)

    logging.Logger.trace = _trace  # type: ignore[attr-defined]
    logging.TRACE = TRACE  # type: ignore[attr-defined]


class AnsiColorFormatter(logging.Formatter):
    """Formatter that adds ANSI colors and a compact timestamp."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.colored:
            return base
        level = record.levelname.upper()
        color = _LEVEL_COLORS.get(level, "")
        # Expect format "HH:MM:SS LEVEL logger: msg"
        ts, sep, rest = base.partition(" ")
        if not sep:
            return base
        if color:
            rest = rest.replace(level, f"{color}{level}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


class _WidgetSinks:
    """Weakly held set of ui.log-like widgets (anything with ``push(str)``)."""

    def __init__(self) -> None:
        self._refs: set[weakref.ref] = set()
        self._lock = threading.Lock()

    def __bool__(self) -> bool:
        return bool(self._refs)

    def add(self, widget) -> None:
        try:
            ref = weakref.ref(widget)
        except TypeError:
            return
        with self._lock:
            self._refs.add(ref)

    def discard(self, widget) -> None:
        try:
            ref = weakref.ref(widget)
        except TypeError:
            return
        with self._lock:
            self._refs.discard(ref)

    def push(self, line: str) -> None:
        stale: list[weakref.ref] = []
        with self._lock:
            for ref in list(self._refs):
                widget = ref()
                if widget is None:
                    stale.append(ref)
                    continue
                try:
                    widget.push(line)
                except Exception:
                    # Widget deleted with its client; drop it
                    stale.append(ref)
            for ref in stale:
                self._refs.discard(ref)


# ---- NiceGUI UI log handler ----

_ui_log_targets = _WidgetSinks()


class NiceGuiLogHandler(logging.Handler):
    """Push log records into one or more NiceGUI ui.log widgets."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%H:%M:%S"
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        _ui_log_targets.push(self.format(record))


def attach_ui_log(log_widget) -> None:
    """Register a ui.log widget as a sink for log records."""
    _ui_log_targets.add(log_widget)


def detach_ui_log(log_widget) -> None:
    """Unregister a ui.log widget."""
    _ui_log_targets.discard(log_widget)


class ServiceLog:
    """
    Bounded buffer of worker output lines.

    Outlives individual views: a view opened mid-session replays ``lines()``
    and then attaches itself to receive new lines as they arrive.
    """

    def __init__(self, maxlen: int = 500) -> None:
        self._lines: deque[str] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._sinks = _WidgetSinks()

    def append(self, text: str) -> None:
        line = f"{time.strftime('%H:%M:%S')} {text}"
        with self._lock:
            self._lines.append(line)
        self._sinks.push(line)

    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def attach(self, log_widget) -> None:
        self._sinks.add(log_widget)

    def detach(self, log_widget) -> None:
        self._sinks.discard(log_widget)


def _have_console_handler(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and isinstance(h.formatter, AnsiColorFormatter)
        for h in logger.handlers
    )


def _have_ui_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h, NiceGuiLogHandler) for h in logger.handlers)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure root logger with:
      - ANSI-colored console handler (stderr) with timestamps and levels
      - Optional NiceGUI UI log handler (messages mirrored to the info view)
    Idempotent across multiple calls.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not _have_console_handler(logger):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not _have_ui_handler(logger):
        logger.addHandler(NiceGuiLogHandler(level=level))

    return logger
