from __future__ import annotations

from nicegui import ui

from meshtether.common.logging_config import attach_ui_log, detach_ui_log
from meshtether.lifecycle import AppContext
from meshtether.pages.alerts import run_in_ui
from meshtether.services import preferences as prefkeys
from meshtether.state import ObserverRole, ServiceState


class InfoPage:
    """Info tab: addressing, interfaces and the worker's log output."""

    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx
        self.summary_label: ui.label | None = None
        self.service_log: ui.log | None = None
        self.app_log: ui.log | None = None

    def summary(self, state: ServiceState) -> str:
        prefs = self.ctx.prefs
        return (
            f"state: {state.name.lower()} | "
            f"ip: {prefs.get(prefkeys.ADHOC_IP) or '-'} | "
            f"lan: {prefs.get(prefkeys.IF_LAN) or '-'} | "
            f"wan: {prefs.get(prefkeys.IF_WAN) or '-'}"
        )

    def update(self, state: ServiceState) -> None:
        def _apply() -> None:
            if self.summary_label:
                self.summary_label.text = self.summary(state)

        run_in_ui(_apply)

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Info").classes("text-md font-medium")
            self.summary_label = ui.label(self.summary(self.ctx.machine.state)).classes(
                "text-sm"
            )
            ui.label("Service log").classes("text-sm font-medium")
            self.service_log = ui.log(max_lines=self.ctx.config.service_log_lines).classes(
                "w-full h-64"
            )
            ui.label("Application log").classes("text-sm font-medium")
            self.app_log = ui.log(max_lines=200).classes("w-full h-40")
        attach_ui_log(self.app_log)
        for line in self.ctx.service_log.lines():
            self.service_log.push(line)
        self.ctx.service_log.attach(self.service_log)

        def _detach() -> None:
            self.ctx.fanout.unregister(ObserverRole.INFO, self)
            if self.service_log is not None:
                self.ctx.service_log.detach(self.service_log)
            if self.app_log is not None:
                detach_ui_log(self.app_log)

        self.ctx.fanout.register(ObserverRole.INFO, self)
        ui.context.client.on_disconnect(_detach)
