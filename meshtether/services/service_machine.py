from __future__ import annotations

import logging
import threading

from meshtether.constants import MSG_SERVICE_STARTING
from meshtether.services.fanout import StatusFanout
from meshtether.services.notifications import NotificationPresenter
from meshtether.services.preferences import PreferenceStore
from meshtether.services.worker import Worker, WorkerFactory
from meshtether.state import ClientRecord, ErrorKind, ObserverRole, ServiceState

logger = logging.getLogger(__name__)


class ServiceStateMachine:
    """
    Supervises the one mesh worker: STOPPED -> STARTING -> RUNNING -> STOPPED.

    Requests come from the UI, completions from the worker's own thread and the
    startup watchdog. Each transition and its effects (observer updates, alerts)
    run under ``_delivery`` so effects land in commit order; ``_lock`` only
    guards the fields. Worker start and stop never block the caller.
    """

    _VALID_TRANSITIONS: dict[ServiceState, set[ServiceState]] = {
        ServiceState.STOPPED: {ServiceState.STARTING},
        ServiceState.STARTING: {ServiceState.RUNNING, ServiceState.STOPPED},
        ServiceState.RUNNING: {ServiceState.STOPPED},
    }

    def __init__(
        self,
        worker_factory: WorkerFactory,
        fanout: StatusFanout,
        presenter: NotificationPresenter,
        prefs: PreferenceStore,
        startup_timeout: float = 0.0,
    ) -> None:
        self._worker_factory = worker_factory
        self.fanout = fanout
        self.presenter = presenter
        self.prefs = prefs
        self.startup_timeout = startup_timeout
        self._state = ServiceState.STOPPED
        self._worker: Worker | None = None
        self._clients: list[ClientRecord] = []
        self._watchdog: threading.Timer | None = None
        self._start_seq = 0
        self._lock = threading.RLock()
        self._delivery = threading.RLock()

    # ---- queries ----

    @property
    def state(self) -> ServiceState:
        return self._state

    def get_state(self) -> ServiceState:
        return self._state

    def is_starting(self) -> bool:
        return self._state is ServiceState.STARTING

    def is_running(self) -> bool:
        return self._state is ServiceState.RUNNING

    def is_stopped(self) -> bool:
        return self._state is ServiceState.STOPPED

    @property
    def worker(self) -> Worker | None:
        return self._worker

    def clients(self) -> list[ClientRecord]:
        with self._lock:
            return list(self._clients)

    def _transition(self, new_state: ServiceState) -> bool:
        old_state = self._state
        if new_state not in self._VALID_TRANSITIONS[old_state]:
            return False
        self._state = new_state
        logger.info("Mesh service %s -> %s", old_state.name, new_state.name)
        return True

    # ---- requests ----

    def request_start(self) -> bool:
        """Start the worker unless one is already starting or running."""
        with self._delivery:
            with self._lock:
                if self._state is not ServiceState.STOPPED:
                    logger.debug("Start ignored in state %s", self._state.name)
                    return False
                # A factory error leaves the machine STOPPED
                worker = self._worker_factory(self)
                self._transition(ServiceState.STARTING)
                self._worker = worker
                self._start_seq += 1
                self._arm_watchdog(self._start_seq)
            if not self.prefs.has_wan():
                logger.warning("No WAN interface configured; clients will only reach the mesh")
            self.fanout.show_progress(MSG_SERVICE_STARTING)
            self.fanout.notify_all(ServiceState.STARTING)
        worker.start()
        return True

    def request_stop(self) -> bool:
        """Ask the active worker to stop; completion arrives via on_worker_stopped."""
        with self._lock:
            worker = self._worker
        if worker is None:
            return False
        worker.stop()
        return True

    # ---- worker callbacks ----

    def on_worker_started(self) -> None:
        with self._delivery:
            with self._lock:
                if not self._transition(ServiceState.RUNNING):
                    logger.warning("Worker reported started in state %s", self._state.name)
                    return
                self._cancel_watchdog()
            self.fanout.notify_all(ServiceState.RUNNING)
            self.presenter.on_running()

    def on_worker_stopped(self) -> None:
        with self._delivery:
            with self._lock:
                if self._state is not ServiceState.STOPPED:
                    self._transition(ServiceState.STOPPED)
                self._cancel_watchdog()
                self._worker = None
                self._clients.clear()
            self.presenter.on_stopped()
            self.fanout.notify_all(ServiceState.STOPPED)

    def on_client_joined(self, record: ClientRecord) -> None:
        with self._delivery:
            with self._lock:
                self._clients.append(record)
                state = self._state
            self.fanout.notify(state, ObserverRole.LINKS)
            self.presenter.on_client_added(record)

    def on_worker_error(self, code: object) -> ErrorKind:
        with self._delivery:
            return self.presenter.on_error(code, self.fanout.status_view())

    def found_if_lan(self, name: str) -> None:
        self.prefs.found_if_lan(name)

    # ---- startup watchdog ----

    def _arm_watchdog(self, seq: int) -> None:
        if self.startup_timeout <= 0:
            return
        timer = threading.Timer(self.startup_timeout, self._startup_timed_out, args=(seq,))
        timer.daemon = True
        self._watchdog = timer
        timer.start()

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _startup_timed_out(self, seq: int) -> None:
        with self._delivery:
            with self._lock:
                # Lost the race to on_worker_started/stopped, or fired for an earlier start
                if self._state is not ServiceState.STARTING or seq != self._start_seq:
                    return
                self._watchdog = None
                worker = self._worker
            logger.error("Mesh worker did not start within %.1fs", self.startup_timeout)
            self.on_worker_error(ErrorKind.OTHER)
        if worker is not None:
            worker.stop()

    # ---- lifecycle ----

    def cleanup_notifications(self) -> None:
        """Clear alerts left behind by a worker that stopped on its own."""
        with self._lock:
            worker = self._worker
        if worker is not None and worker.current_state() is ServiceState.STOPPED:
            self.on_worker_stopped()

    def terminate(self) -> None:
        """Hosting process is going away; stop the worker if it is still around."""
        with self._lock:
            self._cancel_watchdog()
            worker = self._worker
        if worker is not None:
            logger.error("Shutting down while the mesh service is still running!")
            worker.stop()
