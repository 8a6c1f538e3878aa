from __future__ import annotations

from meshtether.pages.alerts import NiceGuiAlertSink, run_in_ui
from meshtether.pages.links import client_rows
from meshtether.state import Alert, AlertId, ClientRecord


def test_run_in_ui_runs_inline_without_event_loop():
    calls = []
    run_in_ui(lambda: calls.append(1))
    assert calls == [1]


def test_alert_sink_tracks_active_alerts_without_clients():
    sink = NiceGuiAlertSink()
    running = Alert(AlertId.RUNNING, "Mesh Tether", "running", persistent=True)
    client = Alert(AlertId.CLIENT, "Mesh Tether", "New client: laptop")

    sink.post(running)
    sink.post(client)
    assert {a.alert_id for a in sink.active()} == {AlertId.RUNNING, AlertId.CLIENT}

    sink.clear(AlertId.RUNNING, AlertId.CLIENT)
    assert sink.active() == []


def test_client_rows():
    rows = client_rows([ClientRecord("aa:bb", "10.0.0.4", "phone", joined_at=0.0), ClientRecord("cc:dd")])
    assert rows[0]["hostname"] == "phone"
    assert rows[0]["ip"] == "10.0.0.4"
    assert rows[1]["ip"] == "-"
    assert rows[1]["hostname"] == "-"


def test_custom_sound_is_a_json_string_literal():
    sound = "/static/it's \"here\".ogg"
    js = NiceGuiAlertSink.audio_js(sound)
    assert js.startswith('new Audio("/static/it\'s \\"here\\".ogg")')


def test_default_sound_uses_chime():
    assert "AudioContext" in NiceGuiAlertSink.audio_js(None)
    assert "AudioContext" in NiceGuiAlertSink.audio_js("")
