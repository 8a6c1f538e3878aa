from __future__ import annotations

import logging
from typing import Protocol

from meshtether.constants import (
    ACTION_CLIENTS,
    ACTION_STATUS,
    APP_NAME,
    CLIENT_LIGHT_ARGB,
    CLIENT_LIGHT_OFF_MS,
    CLIENT_LIGHT_ON_MS,
    MSG_NOTIFY_CLIENT,
    MSG_NOTIFY_ERROR,
    MSG_NOTIFY_RUNNING,
)
from meshtether.services import preferences as prefkeys
from meshtether.services.fanout import StatusView
from meshtether.services.preferences import PreferenceStore
from meshtether.state import Alert, AlertId, ClientRecord, DialogKind, ErrorKind

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Where passive alerts end up (system tray, browser notifications, ...)."""

    def post(self, alert: Alert) -> None: ...

    def clear(self, *alert_ids: AlertId) -> None: ...

    def toast(self, message: str, long: bool = False) -> None: ...


class NotificationPresenter:
    """Turns service events into alerts, dialogs and tab switches."""

    def __init__(self, prefs: PreferenceStore, sink: AlertSink) -> None:
        self.prefs = prefs
        self.sink = sink

    def on_running(self) -> None:
        self.sink.post(
            Alert(
                alert_id=AlertId.RUNNING,
                title=APP_NAME,
                message=MSG_NOTIFY_RUNNING,
                persistent=True,
                action=ACTION_STATUS,
            )
        )

    def client_alert(self, record: ClientRecord) -> Alert | None:
        """Build the client-joined alert, or None if client alerts are off."""
        if not self.prefs.get_bool(prefkeys.CLIENT_NOTIFY):
            return None
        light = None
        if self.prefs.get_bool(prefkeys.CLIENT_LIGHT):
            light = (CLIENT_LIGHT_ARGB, CLIENT_LIGHT_ON_MS, CLIENT_LIGHT_OFF_MS)
        # None and "" both mean the default sound
        sound = self.prefs.get(prefkeys.CLIENT_SOUND) or None
        return Alert(
            alert_id=AlertId.CLIENT,
            title=APP_NAME,
            message=f"{MSG_NOTIFY_CLIENT} {record.nice_string()}",
            action=ACTION_CLIENTS,
            quiet=self.prefs.get_bool(prefkeys.CLIENT_QUIET),
            light=light,
            sound=sound,
        )

    def on_client_added(self, record: ClientRecord) -> None:
        alert = self.client_alert(record)
        if alert is not None:
            self.sink.post(alert)

    def on_error(self, kind: object, status_view: StatusView | None) -> ErrorKind:
        """
        Surface a worker failure exactly once.

        With a focused status view the error becomes a modal dialog; otherwise
        it is posted as a passive alert. Unknown codes are treated as OTHER.
        """
        kind = ErrorKind.classify(kind)
        logger.error("Mesh service failed: %s", kind.name)
        if status_view is not None and self._has_focus(status_view):
            if kind is ErrorKind.ROOT_ACCESS_DENIED:
                status_view.show_dialog(DialogKind.ROOT)
            elif kind is ErrorKind.SUPPLICANT_FAILURE:
                status_view.show_dialog(DialogKind.SUPPLICANT)
            else:
                status_view.show_links_tab()
                status_view.show_dialog(DialogKind.ERROR)
            return kind
        logger.debug("No focused status view, posting error alert")
        self.sink.post(
            Alert(
                alert_id=AlertId.ERROR,
                title=APP_NAME,
                message=MSG_NOTIFY_ERROR,
                action=ACTION_STATUS,
            )
        )
        return kind

    @staticmethod
    def _has_focus(view: StatusView) -> bool:
        try:
            return bool(view.has_focus())
        except Exception:
            logger.exception("Status view focus check failed")
            return False

    def on_stopped(self) -> None:
        self.sink.clear(AlertId.RUNNING, AlertId.CLIENT)

    def toast(self, message: str, long: bool = False) -> None:
        self.sink.toast(message, long)
