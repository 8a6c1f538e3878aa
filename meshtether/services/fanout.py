from __future__ import annotations

import logging
import threading
import weakref
from typing import Any, Callable, Protocol

from meshtether.constants import ACCESS_STATE_PERMISSION, ACTION_CHANGED
from meshtether.state import DialogKind, ObserverRole, ServiceState

logger = logging.getLogger(__name__)


class Observer(Protocol):
    def update(self, state: ServiceState) -> None: ...


class StatusView(Observer, Protocol):
    """The status view also hosts progress messages, dialogs and tabs."""

    def show_progress(self, message: str) -> None: ...

    def show_dialog(self, kind: DialogKind) -> None: ...

    def show_links_tab(self) -> None: ...

    def has_focus(self) -> bool: ...


BroadcastCallback = Callable[[dict[str, Any]], None]


class StateBroadcaster:
    """
    Publishes ``{"state": ServiceState}`` on a topic outside the views.

    Subscribing requires the ACCESS_STATE capability token.
    """

    def __init__(
        self, topic: str = ACTION_CHANGED, permission: str = ACCESS_STATE_PERMISSION
    ) -> None:
        self.topic = topic
        self._permission = permission
        self._subscribers: list[BroadcastCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: BroadcastCallback, permission: str) -> None:
        if permission != self._permission:
            raise PermissionError(f"Subscribing to {self.topic} requires {self._permission}")
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: BroadcastCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, state: ServiceState) -> None:
        # TODO: only publish when the state changed or the last broadcast went stale
        with self._lock:
            subscribers = list(self._subscribers)
        payload = {"state": state}
        for callback in subscribers:
            try:
                callback(dict(payload))
            except Exception:
                logger.exception("State broadcast subscriber failed on %s", self.topic)


class StatusFanout:
    """
    One observer slot per role (status, links, info); last registration wins.

    Slots hold weak references so a closed view drops out on its own.
    Writers take the lock; notifications read a snapshot and deliver outside it.
    """

    def __init__(self, broadcaster: StateBroadcaster | None = None) -> None:
        self._slots: dict[ObserverRole, weakref.ref | None] = {
            role: None for role in ObserverRole
        }
        self._lock = threading.Lock()
        self.broadcaster = broadcaster or StateBroadcaster()

    def register(self, role: ObserverRole, observer: Observer) -> None:
        ref = weakref.ref(observer)
        with self._lock:
            self._slots[role] = ref
        logger.debug("Registered %s observer %r", role.value, observer)

    def unregister(self, role: ObserverRole, observer: Observer | None = None) -> None:
        """Clear the slot; with ``observer`` given, only if it still holds it."""
        with self._lock:
            ref = self._slots[role]
            if observer is not None and (ref is None or ref() is not observer):
                return
            self._slots[role] = None

    def get(self, role: ObserverRole) -> Any | None:
        with self._lock:
            ref = self._slots[role]
        return ref() if ref is not None else None

    def status_view(self) -> StatusView | None:
        return self.get(ObserverRole.STATUS)

    def _snapshot(self, roles) -> list[tuple[ObserverRole, Observer]]:
        with self._lock:
            refs = [(role, self._slots[role]) for role in roles]
        live = []
        for role, ref in refs:
            observer = ref() if ref is not None else None
            if observer is not None:
                live.append((role, observer))
        return live

    def notify(self, state: ServiceState, *roles: ObserverRole) -> None:
        """Deliver ``state`` to the given roles only."""
        for role, observer in self._snapshot(roles):
            try:
                observer.update(state)
            except Exception:
                logger.exception("%s observer failed to update", role.value)

    def notify_all(self, state: ServiceState) -> None:
        """Deliver ``state`` to every registered view, then broadcast it."""
        self.notify(state, *ObserverRole)
        self.broadcaster.publish(state)

    def show_progress(self, message: str) -> None:
        view = self.status_view()
        if view is None:
            logger.info("No status view for progress message: %s", message)
            return
        try:
            view.show_progress(message)
        except Exception:
            logger.exception("Status view failed to show progress")
