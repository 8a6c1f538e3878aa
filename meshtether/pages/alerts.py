from __future__ import annotations

import json
import threading
from typing import Callable

from nicegui import core, ui

from meshtether.state import Alert, AlertId


def run_in_ui(fn: Callable[[], None]) -> None:
    """Run ``fn`` on the NiceGUI event loop; worker callbacks arrive on other threads."""
    loop = core.loop
    if loop is None or not loop.is_running():
        fn()
        return
    loop.call_soon_threadsafe(fn)


class _AlertArea:
    """Per-client container that holds the rendered notifications."""

    def __init__(self, container: ui.element) -> None:
        self.container = container
        self.shown: dict[AlertId, ui.notification] = {}


class NiceGuiAlertSink:
    """
    Renders alerts into every connected browser tab.

    Persistent alerts stay until cleared and are replayed into tabs that
    connect later; the rest are dismissible notifications.
    """

    def __init__(self) -> None:
        self._areas: dict[int, _AlertArea] = {}
        self._active: dict[AlertId, Alert] = {}
        self._lock = threading.Lock()

    def attach(self, container: ui.element) -> None:
        area = _AlertArea(container)
        with self._lock:
            self._areas[id(container)] = area
            persistent = [a for a in self._active.values() if a.persistent]
        for alert in persistent:
            self._render(area, alert)

    def detach(self, container: ui.element) -> None:
        with self._lock:
            self._areas.pop(id(container), None)

    def _live_areas(self) -> list[_AlertArea]:
        with self._lock:
            areas = list(self._areas.values())
        return [a for a in areas if not a.container.is_deleted]

    def post(self, alert: Alert) -> None:
        with self._lock:
            self._active[alert.alert_id] = alert
        run_in_ui(lambda: self._post_all(alert))

    def _post_all(self, alert: Alert) -> None:
        for area in self._live_areas():
            self._render(area, alert)

    def _render(self, area: _AlertArea, alert: Alert) -> None:
        old = area.shown.pop(alert.alert_id, None)
        if old is not None and not old.is_deleted:
            old.dismiss()
        color = {
            AlertId.RUNNING: "positive",
            AlertId.CLIENT: "info",
            AlertId.ERROR: "negative",
        }[alert.alert_id]
        with area.container:
            note = ui.notification(
                f"{alert.title}: {alert.message}",
                type=color,
                position="top-right",
                timeout=None if alert.persistent else 8.0,
                close_button=not alert.persistent,
                icon="lightbulb" if alert.light else None,
            )
        area.shown[alert.alert_id] = note
        if not alert.quiet and alert.alert_id is AlertId.CLIENT:
            self._play(area.container, alert.sound)

    @staticmethod
    def audio_js(sound: str | None) -> str:
        """JavaScript that plays ``sound`` (a URL) or a short default chime."""
        if sound:
            return f"new Audio({json.dumps(sound)}).play().catch(() => {{}})"
        return (
            "(() => { const c = new AudioContext(); const o = c.createOscillator();"
            " o.connect(c.destination); o.start(); o.stop(c.currentTime + 0.15); })()"
        )

    @classmethod
    def _play(cls, container: ui.element, sound: str | None) -> None:
        with container:
            ui.run_javascript(cls.audio_js(sound))

    def clear(self, *alert_ids: AlertId) -> None:
        with self._lock:
            for alert_id in alert_ids:
                self._active.pop(alert_id, None)
        run_in_ui(lambda: self._clear_all(alert_ids))

    def _clear_all(self, alert_ids: tuple[AlertId, ...]) -> None:
        for area in self._live_areas():
            for alert_id in alert_ids:
                note = area.shown.pop(alert_id, None)
                if note is not None and not note.is_deleted:
                    note.dismiss()

    def toast(self, message: str, long: bool = False) -> None:
        timeout = 5000 if long else 2000

        def _show() -> None:
            for area in self._live_areas():
                with area.container:
                    ui.notify(message, timeout=timeout)

        run_in_ui(_show)

    def active(self) -> list[Alert]:
        with self._lock:
            return list(self._active.values())
