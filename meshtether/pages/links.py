from __future__ import annotations

import time

from nicegui import ui

from meshtether.lifecycle import AppContext
from meshtether.pages.alerts import run_in_ui
from meshtether.state import ClientRecord, ObserverRole, ServiceState

_COLUMNS = [
    {"name": "hostname", "label": "Host", "field": "hostname", "align": "left"},
    {"name": "ip", "label": "IP", "field": "ip", "align": "left"},
    {"name": "address", "label": "MAC", "field": "address", "align": "left"},
    {"name": "joined", "label": "Joined", "field": "joined", "align": "left"},
]


def client_rows(clients: list[ClientRecord]) -> list[dict]:
    return [
        {
            "address": c.address,
            "ip": c.ip or "-",
            "hostname": c.hostname or "-",
            "joined": time.strftime("%H:%M:%S", time.localtime(c.joined_at)),
        }
        for c in clients
    ]


class LinksPage:
    """Links tab: clients that joined during the current session."""

    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx
        self.table: ui.table | None = None
        self.empty_label: ui.label | None = None

    def update(self, state: ServiceState) -> None:
        run_in_ui(self._refresh)

    def _refresh(self) -> None:
        rows = client_rows(self.ctx.machine.clients())
        if self.table:
            self.table.rows = rows
            self.table.update()
        if self.empty_label:
            self.empty_label.set_visibility(not rows)

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Clients").classes("text-md font-medium")
            self.empty_label = ui.label("No clients yet").classes("text-sm")
            self.table = ui.table(columns=_COLUMNS, rows=[], row_key="address").classes(
                "w-full"
            )
        self.ctx.fanout.register(ObserverRole.LINKS, self)
        ui.context.client.on_disconnect(
            lambda: self.ctx.fanout.unregister(ObserverRole.LINKS, self)
        )
        self._refresh()
