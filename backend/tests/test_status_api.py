from __future__ import annotations


def test_status_reports_relay_counters(client, app):
    r = client.get("/api/status")
    assert r.status_code == 200
    payload = r.json()

    assert payload["viewers"] == 0
    assert payload["framesBroadcast"] == 1
    assert payload["framesDropped"] == 0
    assert payload["frameSource"] is None
    assert payload["captureMode"] == "desktop"
    assert payload["windowId"] is None
    assert payload["signalingSessions"] == 0


def test_status_follows_capture_and_signaling(client, app):
    app.state.capture_state.switch_to_window(12)
    client.post("/api/signaling/sessions")

    with client.websocket_connect("/api/ws/stream") as ws:
        ws.receive_bytes()
        payload = client.get("/api/status").json()
        assert payload["viewers"] == 1

    assert payload["captureMode"] == "window"
    assert payload["windowId"] == 12
    assert payload["signalingSessions"] == 1
