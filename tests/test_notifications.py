from __future__ import annotations

import pytest

from meshtether.constants import ACTION_CLIENTS, CLIENT_LIGHT_ARGB
from meshtether.services import preferences as prefkeys
from meshtether.services.notifications import NotificationPresenter
from meshtether.services.preferences import PreferenceStore
from meshtether.state import AlertId, ClientRecord, DialogKind, ErrorKind
from tests.utils.fakes import FakeStatusView, RecordingSink

_CLIENT = ClientRecord(address="02:11:22:33:44:55", ip="10.0.0.7", hostname="phone")


@pytest.fixture
def presenter(storage, sink) -> NotificationPresenter:
    return NotificationPresenter(PreferenceStore(storage), sink)


def test_running_alert_is_persistent(presenter, sink):
    presenter.on_running()
    (alert,) = sink.posted()
    assert alert.alert_id is AlertId.RUNNING
    assert alert.persistent


def test_client_alert_off_by_default(presenter, sink):
    presenter.on_client_added(_CLIENT)
    assert sink.events == []


@pytest.mark.parametrize("sound", [None, ""])
def test_client_alert_uses_default_sound(presenter, storage, sink, sound):
    storage[prefkeys.CLIENT_NOTIFY] = True
    storage[prefkeys.CLIENT_SOUND] = sound

    presenter.on_client_added(_CLIENT)

    (alert,) = sink.posted()
    assert alert.alert_id is AlertId.CLIENT
    assert alert.sound is None
    assert not alert.persistent
    assert alert.action == ACTION_CLIENTS
    assert "phone (10.0.0.7)" in alert.message


def test_client_alert_options(presenter, storage, sink):
    storage.update(
        {
            prefkeys.CLIENT_NOTIFY: True,
            prefkeys.CLIENT_SOUND: "/static/join.ogg",
            prefkeys.CLIENT_LIGHT: True,
            prefkeys.CLIENT_QUIET: True,
        }
    )

    presenter.on_client_added(_CLIENT)

    (alert,) = sink.posted()
    assert alert.sound == "/static/join.ogg"
    assert alert.light is not None and alert.light[0] == CLIENT_LIGHT_ARGB
    assert alert.quiet


@pytest.mark.parametrize(
    "kind, dialog",
    [
        (ErrorKind.ROOT_ACCESS_DENIED, DialogKind.ROOT),
        (ErrorKind.SUPPLICANT_FAILURE, DialogKind.SUPPLICANT),
    ],
)
def test_focused_status_view_gets_modal_only(presenter, sink, kind, dialog):
    view = FakeStatusView(focused=True)

    presenter.on_error(kind, view)

    assert view.dialogs == [dialog]
    assert view.links_tab_shown == 0
    assert sink.events == []


def test_other_error_switches_tab_and_shows_generic_dialog(presenter, sink):
    view = FakeStatusView(focused=True)

    presenter.on_error(ErrorKind.OTHER, view)

    assert view.links_tab_shown == 1
    assert view.dialogs == [DialogKind.ERROR]
    assert sink.events == []


def test_other_error_without_status_view_posts_passive_alert(presenter, sink):
    presenter.on_error(ErrorKind.OTHER, None)
    assert sink.kinds() == ["post:ERROR"]


def test_unfocused_status_view_falls_back_to_alert(presenter, sink):
    view = FakeStatusView(focused=False)

    presenter.on_error(ErrorKind.ROOT_ACCESS_DENIED, view)

    assert view.dialogs == []
    assert sink.kinds() == ["post:ERROR"]


@pytest.mark.parametrize("code", [99, "bogus", None, 2.5])
def test_unknown_codes_are_surfaced_as_other(presenter, sink, code):
    view = FakeStatusView(focused=True)

    kind = presenter.on_error(code, view)

    assert kind is ErrorKind.OTHER
    assert view.dialogs == [DialogKind.ERROR]


def test_stopped_clears_running_and_client_alerts(presenter, sink):
    presenter.on_stopped()
    assert sink.events == [("clear", (AlertId.RUNNING, AlertId.CLIENT))]


def test_focus_check_failure_falls_back_to_alert(presenter, sink):
    class _Closing(FakeStatusView):
        def has_focus(self) -> bool:
            raise RuntimeError("window closed")

    view = _Closing()
    presenter.on_error(ErrorKind.SUPPLICANT_FAILURE, view)

    assert view.dialogs == []
    assert sink.kinds() == ["post:ERROR"]


def test_toast_is_forwarded(presenter):
    sink = RecordingSink()
    presenter.sink = sink
    presenter.toast("hello")
    assert sink.events == [("toast", "hello")]
