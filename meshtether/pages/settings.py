from __future__ import annotations

import logging

from nicegui import ui

from meshtether.lifecycle import AppContext
from meshtether.services import preferences as prefkeys


class SettingsPage:
    """Settings tab: interfaces, address and client alert options."""

    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx

    def _bind_switch(self, label: str, key: str) -> ui.switch:
        prefs = self.ctx.prefs

        def _on_change(e) -> None:
            prefs.set(key, bool(e.value))
            logging.debug("Set %s to %s", key, e.value)

        return ui.switch(label, value=prefs.get_bool(key), on_change=_on_change)

    def _bind_input(self, label: str, key: str) -> ui.input:
        prefs = self.ctx.prefs

        def _on_change(e) -> None:
            prefs.set(key, (e.value or "").strip())

        return ui.input(label=label, value=prefs.get(key) or "", on_change=_on_change)

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Network").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self._bind_input("Ad-hoc IP", prefkeys.ADHOC_IP)
                self._bind_input("LAN interface", prefkeys.IF_LAN)
                self._bind_input("WAN interface", prefkeys.IF_WAN)
            self._bind_switch("Start without WAN", prefkeys.WAN_NOWAIT)
        with ui.card().classes("w-full"):
            ui.label("Client alerts").classes("text-md font-medium")
            self._bind_switch("Notify when a client joins", prefkeys.CLIENT_NOTIFY)
            with ui.row().classes("items-center gap-2"):
                self._bind_switch("Blink", prefkeys.CLIENT_LIGHT)
                self._bind_switch("Quiet", prefkeys.CLIENT_QUIET)
            sound = self._bind_input("Sound URL (empty = default)", prefkeys.CLIENT_SOUND)
            with sound:
                ui.tooltip("/static/join.ogg or https://...")
