from __future__ import annotations

import logging

from nicegui import ui

from meshtether.constants import APP_NAME, PROJECT_DOC_URL
from meshtether.lifecycle import AppContext
from meshtether.pages.alerts import run_in_ui
from meshtether.pages.info import InfoPage
from meshtether.pages.links import LinksPage
from meshtether.pages.settings import SettingsPage
from meshtether.state import DialogKind, ObserverRole, ServiceState, ServiceStatus

logger = logging.getLogger(__name__)

_DIALOG_TEXT = {
    DialogKind.ROOT: (
        "Root access denied",
        "Mesh tethering needs root to configure the wifi interface and NAT. "
        "Grant root access to the helper and try again.",
    ),
    DialogKind.SUPPLICANT: (
        "Wifi supplicant is running",
        "The wifi supplicant could not be stopped. Turn off regular wifi and try again.",
    ),
    DialogKind.ERROR: (
        "Mesh service failed",
        "The mesh service stopped with an error. Check the log in the Info tab.",
    ),
}

_FOCUS_JS = (
    "window.addEventListener('focus', () => emitEvent('mesh_focus', true));"
    "window.addEventListener('blur', () => emitEvent('mesh_focus', false));"
    "emitEvent('mesh_focus', document.hasFocus());"
)

_STATE_STYLE = {
    ServiceState.STOPPED: ("stopped", "Start", "color: #DB2828"),
    ServiceState.STARTING: ("starting", "Stop", "color: #F2C037"),
    ServiceState.RUNNING: ("running", "Stop", "color: #21BA45"),
}


class StatusPage:
    """Main view: service toggle, progress, error dialogs and the links/info tabs."""

    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx
        self.status = ServiceStatus()
        self.links = LinksPage(ctx)
        self.info = InfoPage(ctx)
        self.settings = SettingsPage(ctx)
        self.tabs: ui.tabs | None = None
        self.links_tab: ui.tab | None = None
        self.state_label: ui.label | None = None
        self.toggle_button: ui.button | None = None
        self.progress_dialog: ui.dialog | None = None
        self.progress_label: ui.label | None = None
        self.dialogs: dict[DialogKind, ui.dialog] = {}
        self._focused = True
        self._connected = True

    # ---- observer interface ----

    def update(self, state: ServiceState) -> None:
        run_in_ui(lambda: self._apply_state(state))

    def _apply_state(self, state: ServiceState) -> None:
        label, action, style = _STATE_STYLE[state]
        self.status.state = int(state)
        self.status.label = label
        self.status.client_count = len(self.ctx.machine.clients())
        if self.state_label:
            self.state_label.style(style)
        if self.toggle_button:
            self.toggle_button.text = action
        if state is not ServiceState.STARTING and self.progress_dialog:
            self.progress_dialog.close()

    def show_progress(self, message: str) -> None:
        def _show() -> None:
            self.status.progress = message
            if self.progress_dialog:
                self.progress_dialog.open()

        run_in_ui(_show)

    def show_dialog(self, kind: DialogKind) -> None:
        def _show() -> None:
            if self.progress_dialog:
                self.progress_dialog.close()
            dialog = self.dialogs.get(kind)
            if dialog:
                dialog.open()

        run_in_ui(_show)

    def show_links_tab(self) -> None:
        def _select() -> None:
            if self.tabs and self.links_tab:
                self.tabs.set_value(self.links_tab)

        run_in_ui(_select)

    def has_focus(self) -> bool:
        return self._connected and self._focused

    # ---- actions ----

    def toggle(self) -> None:
        machine = self.ctx.machine
        if machine.is_stopped():
            machine.request_start()
        else:
            machine.request_stop()

    def _on_focus(self, e) -> None:
        self._focused = bool(e.args)

    def _on_disconnect(self) -> None:
        self._connected = False
        self.ctx.fanout.unregister(ObserverRole.STATUS, self)
        logger.debug("Status view disconnected")

    # ---- layout ----

    def _build_dialogs(self) -> None:
        with ui.dialog().props("persistent") as self.progress_dialog, ui.card():
            with ui.row().classes("items-center gap-4"):
                ui.spinner(size="lg")
                self.progress_label = ui.label().bind_text_from(self.status, "progress")
        for kind, (title, text) in _DIALOG_TEXT.items():
            with ui.dialog() as dialog, ui.card():
                ui.label(title).classes("text-lg font-medium")
                ui.label(text)
                ui.button("OK", on_click=dialog.close).props("flat")
            self.dialogs[kind] = dialog

    def build(self) -> None:
        client = ui.context.client
        with ui.header().classes("items-center justify-between px-3"):
            ui.label(APP_NAME).classes("text-lg font-medium")
            with ui.row().classes("items-center gap-3"):
                self.state_label = ui.label().bind_text_from(
                    self.status, "label", backward=lambda v: f"MESH: {v}"
                )
                ui.label().bind_text_from(
                    self.status, "client_count", backward=lambda v: f"clients: {v}"
                ).classes("text-sm")
                self.toggle_button = ui.button("Start", on_click=self.toggle)
                ui.button(
                    "?",
                    on_click=lambda: ui.run_javascript(
                        f"window.open('{PROJECT_DOC_URL}', '_blank')"
                    ),
                ).props("round unelevated")

        with ui.tabs().classes("w-full") as self.tabs:
            self.links_tab = ui.tab("Links")
            info_tab = ui.tab("Info")
            settings_tab = ui.tab("Settings")
        with ui.tab_panels(self.tabs, value=self.links_tab).classes("w-full"):
            with ui.tab_panel(self.links_tab):
                self.links.build()
            with ui.tab_panel(info_tab):
                self.info.build()
            with ui.tab_panel(settings_tab):
                self.settings.build()

        self._build_dialogs()

        # Window focus decides between a dialog and a passive alert on errors
        ui.on("mesh_focus", self._on_focus)

        def _on_connect() -> None:
            self._connected = True
            client.run_javascript(_FOCUS_JS)
            # A newer tab may have taken the slot while we were away
            if self.ctx.fanout.status_view() is None:
                self.ctx.fanout.register(ObserverRole.STATUS, self)

        client.on_connect(_on_connect)
        client.on_disconnect(self._on_disconnect)

        self.ctx.fanout.register(ObserverRole.STATUS, self)
        self._apply_state(self.ctx.machine.state)
