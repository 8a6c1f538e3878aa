from __future__ import annotations

import logging
import os
import shlex

from meshtether.common.logging_config import TRACE

# Native tethering helper launched as the worker
WORKER_COMMAND: list[str] = shlex.split(
    os.getenv("MESHTETHER_WORKER_CMD", "meshworker --adhoc")
)

APP_NAME = "Mesh Tether"
PROJECT_DOC_URL = "https://commotionwireless.net"

# External state broadcast: topic and the capability required to subscribe
ACTION_CHANGED = "net.commotionwireless.meshtether.STATE_CHANGED"
ACCESS_STATE_PERMISSION = "net.commotionwireless.meshtether.ACCESS_STATE"

# Notification actions
ACTION_CLIENTS = "net.commotionwireless.meshtether.SHOW_CLIENTS"
ACTION_STATUS = "net.commotionwireless.meshtether.SHOW_STATUS"

# User-visible strings
MSG_SERVICE_STARTING = "Starting mesh service..."
MSG_NOTIFY_RUNNING = "Mesh tethering is running"
MSG_NOTIFY_CLIENT = "New client:"
MSG_NOTIFY_ERROR = "Mesh tethering failed, open the app for details"
MSG_LAN_OK = "Found LAN interface: "

# Client alert indicator: yellow, 500 ms on / 1000 ms off
CLIENT_LIGHT_ARGB = 0xFFFFFF00
CLIENT_LIGHT_ON_MS = 500
CLIENT_LIGHT_OFF_MS = 1000

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("MESHTETHER_SERVER_IP", "127.0.0.1")
SERVER_PORT: int = int(os.getenv("MESHTETHER_SERVER_PORT", "8080"))
AUTO_START: bool = os.getenv("MESHTETHER_AUTO_START", "0") in (
    "1",
    "true",
    "True",
    "yes",
    "YES",
)
STARTUP_TIMEOUT_S: float = float(os.getenv("MESHTETHER_STARTUP_TIMEOUT", "30"))
STOP_TIMEOUT_S: float = float(os.getenv("MESHTETHER_STOP_TIMEOUT", "5"))
SERVICE_LOG_LINES: int = int(os.getenv("MESHTETHER_SERVICE_LOG_LINES", "500"))


# Names accepted by MESHTETHER_LOG_LEVEL and --log-level
LOG_LEVEL_NAMES: dict[str, int] = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _resolve_log_level() -> int:
    name = os.getenv("MESHTETHER_LOG_LEVEL", "").strip().upper()
    return LOG_LEVEL_NAMES.get(name, logging.WARNING)


LOG_LEVEL: int = _resolve_log_level()
