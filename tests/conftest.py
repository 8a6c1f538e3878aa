from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from meshtether.config import Config
from meshtether.lifecycle import initialize, shutdown
from tests.utils.fakes import RecordingSink, WorkerFactoryStub

if TYPE_CHECKING:
    from collections.abc import Iterator

    from meshtether.lifecycle import AppContext


@pytest.fixture
def storage() -> dict:
    """Plain dict standing in for app.storage.general."""
    return {}


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def workers() -> WorkerFactoryStub:
    return WorkerFactoryStub()


@pytest.fixture
def config() -> Config:
    # Startup watchdog off unless a test opts in
    return Config(worker_command=["meshworker"], startup_timeout_s=0.0)


@pytest.fixture
def ctx(config, storage, sink, workers) -> Iterator[AppContext]:
    """
    Fully wired context with a hand-driven fake worker:
      - preferences backed by a dict
      - alerts recorded by RecordingSink
    Shut down after the test.
    """
    context = initialize(config, storage=storage, sink=sink, worker_factory=workers)
    try:
        yield context
    finally:
        shutdown(context)
