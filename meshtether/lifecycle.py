from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from typing import Any

from meshtether.common.logging_config import ServiceLog
from meshtether.config import Config
from meshtether.services.fanout import StatusFanout
from meshtether.services.notifications import AlertSink, NotificationPresenter
from meshtether.services.preferences import PreferenceStore
from meshtether.services.service_machine import ServiceStateMachine
from meshtether.services.worker import (
    ProcessWorker,
    WorkerCallbacks,
    WorkerFactory,
    WorkerOptions,
)
from meshtether.state import Alert, AlertId

logger = logging.getLogger(__name__)


class LoggingAlertSink:
    """Alert sink used when no UI is attached: alerts only reach the log."""

    def post(self, alert: Alert) -> None:
        logger.warning("[%s] %s", alert.alert_id.name, alert.message)

    def clear(self, *alert_ids: AlertId) -> None:
        logger.debug("Cleared alerts: %s", ", ".join(a.name for a in alert_ids))

    def toast(self, message: str, long: bool = False) -> None:
        logger.info(message)


@dataclass
class AppContext:
    """Everything the handlers need, passed explicitly instead of a global app."""

    config: Config
    prefs: PreferenceStore
    fanout: StatusFanout
    presenter: NotificationPresenter
    machine: ServiceStateMachine
    service_log: ServiceLog
    closed: bool = False


def process_worker_factory(config: Config, service_log: ServiceLog) -> WorkerFactory:
    def _factory(callbacks: WorkerCallbacks) -> ProcessWorker:
        return ProcessWorker(
            callbacks,
            WorkerOptions(
                command=list(config.worker_command),
                stop_timeout=config.stop_timeout_s,
                service_log=service_log,
            ),
        )

    return _factory


def initialize(
    config: Config,
    storage: MutableMapping[str, Any] | None = None,
    sink: AlertSink | None = None,
    worker_factory: WorkerFactory | None = None,
) -> AppContext:
    """Build the service graph: preferences, fanout, presenter, state machine."""
    service_log = ServiceLog(maxlen=config.service_log_lines)
    prefs = PreferenceStore(storage)
    prefs.ensure_adhoc_ip()
    presenter = NotificationPresenter(prefs, sink or LoggingAlertSink())
    prefs.toast = presenter.toast
    fanout = StatusFanout()
    machine = ServiceStateMachine(
        worker_factory or process_worker_factory(config, service_log),
        fanout,
        presenter,
        prefs,
        startup_timeout=config.startup_timeout_s,
    )
    logger.debug("Mesh tether context initialized")
    return AppContext(
        config=config,
        prefs=prefs,
        fanout=fanout,
        presenter=presenter,
        machine=machine,
        service_log=service_log,
    )


def shutdown(context: AppContext) -> None:
    """Release the worker. Safe to call more than once."""
    if context.closed:
        return
    context.closed = True
    context.machine.terminate()
    logger.debug("Mesh tether context shut down")


@contextlib.contextmanager
def running_context(
    config: Config,
    storage: MutableMapping[str, Any] | None = None,
    sink: AlertSink | None = None,
    worker_factory: WorkerFactory | None = None,
) -> Iterator[AppContext]:
    """``initialize`` on entry, ``shutdown`` on every exit path."""
    context = initialize(config, storage=storage, sink=sink, worker_factory=worker_factory)
    try:
        yield context
    finally:
        shutdown(context)
