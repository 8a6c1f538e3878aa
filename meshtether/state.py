from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from nicegui import binding


class ServiceState(IntEnum):
    STOPPED = 0
    STARTING = 1
    RUNNING = 2


class ErrorKind(IntEnum):
    """Failures the worker can report; values are the worker's numeric codes."""

    ROOT_ACCESS_DENIED = 1
    OTHER = 2
    SUPPLICANT_FAILURE = 3

    @classmethod
    def classify(cls, code: object) -> "ErrorKind":
        """Map a worker error code (kind, int or name) to a kind; unknown -> OTHER."""
        if isinstance(code, cls):
            return code
        if isinstance(code, bool):
            return cls.OTHER
        if isinstance(code, int):
            try:
                return cls(code)
            except ValueError:
                return cls.OTHER
        if isinstance(code, str):
            name = code.strip().lower()
            if name.isdigit():
                return cls.classify(int(name))
            return _ERROR_ALIASES.get(name, cls.OTHER)
        return cls.OTHER


_ERROR_ALIASES = {
    "root": ErrorKind.ROOT_ACCESS_DENIED,
    "root_access_denied": ErrorKind.ROOT_ACCESS_DENIED,
    "supplicant": ErrorKind.SUPPLICANT_FAILURE,
    "supplicant_failure": ErrorKind.SUPPLICANT_FAILURE,
    "other": ErrorKind.OTHER,
}


class ObserverRole(Enum):
    STATUS = "status"
    LINKS = "links"
    INFO = "info"


class DialogKind(Enum):
    ROOT = "root"
    SUPPLICANT = "supplicant"
    ERROR = "error"


class AlertId(IntEnum):
    RUNNING = 0
    CLIENT = 1
    ERROR = 2


@dataclass(frozen=True)
class ClientRecord:
    address: str  # MAC
    ip: str | None = None
    hostname: str | None = None
    joined_at: float = field(default_factory=time.time)

    def nice_string(self) -> str:
        if self.hostname and self.ip:
            return f"{self.hostname} ({self.ip})"
        if self.hostname:
            return f"{self.hostname} [{self.address}]"
        if self.ip:
            return f"{self.ip} [{self.address}]"
        return self.address


@dataclass(frozen=True)
class Alert:
    alert_id: AlertId
    title: str
    message: str
    persistent: bool = False
    action: str | None = None  # view opened when the alert is activated
    quiet: bool = False
    light: tuple[int, int, int] | None = None  # (argb, on_ms, off_ms)
    sound: str | None = None  # None -> platform default sound


# Bindable mirror of the service state for UI labels
@binding.bindable_dataclass
class ServiceStatus:
    state: int = ServiceState.STOPPED
    label: str = "stopped"
    client_count: int = 0
    progress: str = ""
