from __future__ import annotations

import gc
import logging

import pytest

from meshtether.common.logging_config import (
    TRACE,
    AnsiColorFormatter,
    NiceGuiLogHandler,
    ServiceLog,
    attach_ui_log,
    configure_logging,
    detach_ui_log,
)
from meshtether.constants import _resolve_log_level
from tests.utils.fakes import FakeLogWidget


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_configure_logging_is_idempotent(clean_root_logger):
    configure_logging(logging.DEBUG)
    configure_logging(logging.DEBUG)

    root = clean_root_logger
    consoles = [h for h in root.handlers if isinstance(h.formatter, AnsiColorFormatter)]
    ui_handlers = [h for h in root.handlers if isinstance(h, NiceGuiLogHandler)]
    assert len(consoles) == 1
    assert len(ui_handlers) == 1
    assert root.level == logging.DEBUG


def test_trace_level_is_registered():
    assert logging.getLevelName(TRACE) == "TRACE"
    assert hasattr(logging.getLogger("meshtether.test"), "trace")


def test_ui_handler_pushes_to_attached_widgets():
    widget = FakeLogWidget()
    handler = NiceGuiLogHandler(level=logging.INFO)
    attach_ui_log(widget)
    try:
        handler.emit(logging.makeLogRecord({"name": "mesh", "msg": "hello", "levelname": "INFO"}))
    finally:
        detach_ui_log(widget)
    handler.emit(logging.makeLogRecord({"name": "mesh", "msg": "later", "levelname": "INFO"}))

    assert len(widget.lines) == 1
    assert widget.lines[0].endswith("mesh: hello")


def test_service_log_is_bounded_and_replayable():
    log = ServiceLog(maxlen=3)
    for i in range(5):
        log.append(f"line {i}")

    assert [line.split(" ", 1)[1] for line in log.lines()] == ["line 2", "line 3", "line 4"]
    log.clear()
    assert log.lines() == []


def test_service_log_drops_collected_widgets():
    log = ServiceLog()
    kept, dropped = FakeLogWidget(), FakeLogWidget()
    log.attach(kept)
    log.attach(dropped)
    del dropped
    gc.collect()

    log.append("olsrd up")

    assert len(kept.lines) == 1
    log.detach(kept)
    log.append("olsrd down")
    assert len(kept.lines) == 1


def test_color_formatter_plain_when_not_a_tty():
    formatter = AnsiColorFormatter(colored=False)
    record = logging.makeLogRecord({"name": "mesh", "msg": "hi", "levelname": "INFO"})
    assert "\033[" not in formatter.format(record)


@pytest.mark.parametrize(
    ("value", "level"),
    [("trace", TRACE), ("DEBUG", logging.DEBUG), (" info ", logging.INFO), ("bogus", logging.WARNING)],
)
def test_env_log_level_names(monkeypatch, value, level):
    monkeypatch.setenv("MESHTETHER_LOG_LEVEL", value)
    assert _resolve_log_level() == level
