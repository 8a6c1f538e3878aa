from __future__ import annotations

import logging
import random
from collections.abc import MutableMapping
from typing import Any, Callable

from meshtether.constants import MSG_LAN_OK

logger = logging.getLogger(__name__)

# Keys
IF_LAN = "if_lan"
IF_WAN = "if_wan"
ADHOC_IP = "adhoc_ip"
CLIENT_NOTIFY = "client_notify"
CLIENT_LIGHT = "client_light"
CLIENT_SOUND = "client_sound"
CLIENT_QUIET = "client_quiet"
WAN_NOWAIT = "wan_nowait"

DEFAULTS: dict[str, Any] = {
    IF_LAN: "",
    IF_WAN: "",
    ADHOC_IP: "",
    CLIENT_NOTIFY: False,
    CLIENT_LIGHT: False,
    CLIENT_SOUND: None,
    CLIENT_QUIET: False,
    WAN_NOWAIT: False,
}

_TRUE = ("1", "true", "yes", "on")


class PreferenceStore:
    """
    Key/value settings with defaults.

    Backed by any mutable mapping; the web app passes ``app.storage.general``
    so values persist across restarts. Unset keys fall back to ``DEFAULTS``.
    """

    def __init__(
        self,
        storage: MutableMapping[str, Any] | None = None,
        defaults: dict[str, Any] | None = None,
        toast: Callable[[str], None] | None = None,
    ) -> None:
        self._storage: MutableMapping[str, Any] = storage if storage is not None else {}
        self._defaults = dict(DEFAULTS)
        if defaults:
            self._defaults.update(defaults)
        # Short user-visible feedback, wired to the presenter once it exists
        self.toast = toast

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._storage:
            return self._storage[key]
        if default is not None:
            return default
        return self._defaults.get(key)

    def get_bool(self, key: str, default: bool | None = None) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in _TRUE
        return bool(value)

    def set(self, key: str, value: Any) -> None:
        self._storage[key] = value

    def edit(self, **values: Any) -> None:
        for key, value in values.items():
            self.set(key, value)

    def ensure_adhoc_ip(self, rng: random.Random | None = None) -> str:
        """Generate and store a 10.x.y.z ad-hoc address if none is set."""
        ip = self.get(ADHOC_IP) or ""
        if ip:
            return ip
        rng = rng or random.Random()
        ip = "10." + ".".join(str(rng.randrange(254)) for _ in range(3))
        self.set(ADHOC_IP, ip)
        logger.info("Generated IP: %s", ip)
        return ip

    def found_if_lan(self, found: str) -> None:
        """Store the LAN interface the worker found; it always wins."""
        if not self.get(IF_LAN) and self.toast:
            self.toast(MSG_LAN_OK + found)
        self.set(IF_LAN, found)

    def has_wan(self) -> bool:
        """True if a WAN interface is configured or local-only mode is allowed."""
        if self.get(IF_WAN):
            return True
        return self.get_bool(WAN_NOWAIT)
