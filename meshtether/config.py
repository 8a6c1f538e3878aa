from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field

from meshtether.constants import (
    AUTO_START,
    SERVER_HOST,
    SERVER_PORT,
    SERVICE_LOG_LINES,
    STARTUP_TIMEOUT_S,
    STOP_TIMEOUT_S,
    WORKER_COMMAND,
)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Runtime configuration for the web shell and its mesh worker."""

    host: str = SERVER_HOST
    port: int = SERVER_PORT
    auto_start: bool = AUTO_START
    worker_command: list[str] = field(default_factory=lambda: list(WORKER_COMMAND))
    # 0 disables the startup watchdog
    startup_timeout_s: float = STARTUP_TIMEOUT_S
    stop_timeout_s: float = STOP_TIMEOUT_S
    service_log_lines: int = SERVICE_LOG_LINES

    @classmethod
    def from_env(cls) -> "Config":
        host = os.getenv("MESHTETHER_SERVER_IP", SERVER_HOST)
        port = int(os.getenv("MESHTETHER_SERVER_PORT", str(SERVER_PORT)))
        auto_start = _env_flag("MESHTETHER_AUTO_START", AUTO_START)
        cmd = os.getenv("MESHTETHER_WORKER_CMD")
        worker_command = shlex.split(cmd) if cmd else list(WORKER_COMMAND)
        startup_timeout = float(
            os.getenv("MESHTETHER_STARTUP_TIMEOUT", str(STARTUP_TIMEOUT_S))
        )
        stop_timeout = float(os.getenv("MESHTETHER_STOP_TIMEOUT", str(STOP_TIMEOUT_S)))
        return cls(
            host=host,
            port=port,
            auto_start=auto_start,
            worker_command=worker_command,
            startup_timeout_s=max(0.0, startup_timeout),
            stop_timeout_s=max(0.0, stop_timeout),
        )
