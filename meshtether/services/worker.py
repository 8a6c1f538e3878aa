from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Protocol

from meshtether.common.logging_config import TRACE, ServiceLog
from meshtether.state import ClientRecord, ErrorKind, ServiceState

logger = logging.getLogger(__name__)


class WorkerCallbacks(Protocol):
    """What a worker reports back to its supervisor."""

    def on_worker_started(self) -> None: ...

    def on_worker_stopped(self) -> None: ...

    def on_client_joined(self, record: ClientRecord) -> None: ...

    def on_worker_error(self, code: object) -> None: ...

    def found_if_lan(self, name: str) -> None: ...


class Worker(Protocol):
    """Background mesh worker. ``start``/``stop`` return immediately."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def current_state(self) -> ServiceState: ...


WorkerFactory = Callable[[WorkerCallbacks], Worker]


@dataclass
class WorkerOptions:
    """Options for launching the native mesh worker."""

    command: list[str]
    stop_timeout: float = 5.0
    extra_env: dict | None = None
    service_log: ServiceLog | None = None


class ProcessWorker:
    """
    Runs the native mesh helper as a subprocess and translates its stdout.

    The helper speaks one event per line:
      STARTED                         tethering is up
      CLIENT <mac> [<ip> [<hostname>]] a client joined
      ERROR <code-or-name>            a failure (1=root, 2=other, 3=supplicant)
      LAN <iface>                     the LAN interface in use
      LOG <text>                      free-form service log output
    Anything else is kept in the service log. Process exit means stopped.
    """

    def __init__(self, callbacks: WorkerCallbacks, opts: WorkerOptions) -> None:
        if not opts.command:
            raise ValueError("Worker command is empty")
        self._callbacks = callbacks
        self._opts = opts
        self._proc: subprocess.Popen | None = None
        self._reader: threading.Thread | None = None
        self._state = ServiceState.STOPPED
        self._lock = threading.Lock()

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc and self._proc.poll() is None else None

    def is_running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def current_state(self) -> ServiceState:
        return self._state

    def start(self) -> None:
        """Spawn the helper if not already running."""
        with self._lock:
            if self.is_running():
                return
            env = os.environ.copy()
            if self._opts.extra_env:
                env.update(self._opts.extra_env)
            env.setdefault("PYTHONUNBUFFERED", "1")
            try:
                self._proc = self._spawn(env)
            except Exception as e:
                logger.error("Failed to start mesh worker: %s", e)
                self._proc = None
                self._state = ServiceState.STOPPED
                # Report outside the lock; the supervisor may call back into stop()
                spawn_error: Exception | None = e
            else:
                spawn_error = None
                self._state = ServiceState.STARTING
                self._reader = threading.Thread(
                    target=self._read_events,
                    args=(self._proc,),
                    name="mesh-worker-reader",
                    daemon=True,
                )
                self._reader.start()
        if spawn_error is not None:
            self._callbacks.on_worker_error(ErrorKind.OTHER)
            self._callbacks.on_worker_stopped()

    def _spawn(self, env: dict) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                self._opts.command,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise RuntimeError(f"Failed to start worker {self._opts.command[0]}: {e}") from e

    def stop(self) -> None:
        """Ask the helper to exit; escalate to kill after ``stop_timeout``."""
        proc = self._proc
        if proc is None or proc.poll() is not None:
            return
        try:
            if os.name == "nt":
                proc.terminate()
            else:
                proc.send_signal(signal.SIGTERM)
        except ProcessLookupError:
            return
        threading.Thread(
            target=self._reap, args=(proc,), name="mesh-worker-reaper", daemon=True
        ).start()

    def _reap(self, proc: subprocess.Popen) -> None:
        try:
            proc.wait(timeout=self._opts.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Mesh worker ignored SIGTERM for %.1fs, killing", self._opts.stop_timeout)
            proc.kill()

    def _read_events(self, proc: subprocess.Popen) -> None:
        assert proc.stdout is not None
        try:
            for raw in proc.stdout:
                line = raw.rstrip()
                if line:
                    self.handle_line(line)
        except Exception as e:
            logger.error("Mesh worker reader error: %s", e)
        finally:
            code = proc.wait()
            logger.info("Mesh worker exited with code %s", code)
            self._state = ServiceState.STOPPED
            self._callbacks.on_worker_stopped()

    def handle_line(self, line: str) -> None:
        """Dispatch one protocol line from the helper."""
        if logger.isEnabledFor(TRACE):
            logger.trace("worker> %s", line)  # type: ignore[attr-defined]
        verb, _, rest = line.partition(" ")
        verb = verb.upper()
        if verb == "STARTED":
            self._state = ServiceState.RUNNING
            self._callbacks.on_worker_started()
        elif verb == "CLIENT" and rest:
            fields = rest.split()
            record = ClientRecord(
                address=fields[0],
                ip=fields[1] if len(fields) > 1 else None,
                hostname=" ".join(fields[2:]) or None,
            )
            self._callbacks.on_client_joined(record)
        elif verb == "ERROR":
            self._callbacks.on_worker_error(rest.strip() or ErrorKind.OTHER)
        elif verb == "LAN" and rest:
            self._callbacks.found_if_lan(rest.strip())
        elif verb == "LOG":
            self._log(rest)
        else:
            self._log(line)

    def _log(self, text: str) -> None:
        if self._opts.service_log is not None:
            self._opts.service_log.append(text)
        else:
            logger.debug("worker: %s", text)
