from __future__ import annotations

from dataclasses import dataclass, field

from meshtether.state import Alert, AlertId, DialogKind, ServiceState


class RecordingSink:
    """AlertSink that records ("post", alert) / ("clear", ids) / ("toast", msg)."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def post(self, alert: Alert) -> None:
        self.events.append(("post", alert))

    def clear(self, *alert_ids: AlertId) -> None:
        self.events.append(("clear", alert_ids))

    def toast(self, message: str, long: bool = False) -> None:
        self.events.append(("toast", message))

    def posted(self) -> list[Alert]:
        return [e[1] for e in self.events if e[0] == "post"]

    def kinds(self) -> list[str]:
        """Compact event trace, e.g. ["post:RUNNING", "post:CLIENT", "clear"]."""
        out = []
        for event in self.events:
            if event[0] == "post":
                out.append(f"post:{event[1].alert_id.name}")
            else:
                out.append(event[0])
        return out


class FakeWorker:
    """Worker that only records requests; tests drive the callbacks by hand."""

    def __init__(self, callbacks) -> None:
        self.callbacks = callbacks
        self.start_calls = 0
        self.stop_calls = 0
        self.state = ServiceState.STOPPED

    def start(self) -> None:
        self.start_calls += 1
        self.state = ServiceState.STARTING

    def stop(self) -> None:
        self.stop_calls += 1

    def current_state(self) -> ServiceState:
        return self.state


@dataclass
class WorkerFactoryStub:
    created: list[FakeWorker] = field(default_factory=list)

    def __call__(self, callbacks) -> FakeWorker:
        worker = FakeWorker(callbacks)
        self.created.append(worker)
        return worker

    @property
    def last(self) -> FakeWorker:
        return self.created[-1]


class RecordingObserver:
    def __init__(self) -> None:
        self.updates: list[ServiceState] = []

    def update(self, state: ServiceState) -> None:
        self.updates.append(state)


class FakeStatusView(RecordingObserver):
    def __init__(self, focused: bool = True) -> None:
        super().__init__()
        self.focused = focused
        self.progress: list[str] = []
        self.dialogs: list[DialogKind] = []
        self.links_tab_shown = 0

    def show_progress(self, message: str) -> None:
        self.progress.append(message)

    def show_dialog(self, kind: DialogKind) -> None:
        self.dialogs.append(kind)

    def show_links_tab(self) -> None:
        self.links_tab_shown += 1

    def has_focus(self) -> bool:
        return self.focused


class FakeLogWidget:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def push(self, line: str) -> None:
        self.lines.append(line)
