from __future__ import annotations


def test_capture_info_defaults_to_desktop(client):
    r = client.get("/api/capture")
    assert r.status_code == 200
    assert r.json() == {
        "mode": "desktop",
        "windowId": None,
        "displayMetrics": {
            "width": 1920,
            "height": 1080,
            "physicalWidth": 3840,
            "physicalHeight": 2160,
            "scaleFactor": 2.0,
        },
        "offsets": {"x": 0, "y": 0},
        "debug": False,
    }


def test_switch_window_then_reset(client, app, fake_capture_client):
    r = client.post("/api/capture/window", json={"windowId": 4242})
    assert r.status_code == 200
    assert r.json()["status"] == "window_capture_started"
    assert r.json()["windowId"] == 4242
    assert fake_capture_client.calls == [("window", 4242)]

    assert client.get("/api/capture").json()["windowId"] == 4242
    assert app.state.capture_state.current().window_id == 4242

    r = client.post("/api/capture/reset")
    assert r.status_code == 200
    assert r.json()["mode"] == "desktop"
    assert client.get("/api/capture").json()["mode"] == "desktop"


def test_switch_window_accepts_cg_window_id(client):
    r = client.post("/api/capture/window", json={"cgWindowID": 17})
    assert r.status_code == 200
    assert r.json()["windowId"] == 17


def test_switch_window_requires_id(client, fake_capture_client):
    r = client.post("/api/capture/window", json={})
    assert r.status_code == 400
    assert fake_capture_client.calls == []


def test_switch_window_upstream_failure_keeps_state(client, app, fake_capture_client):
    fake_capture_client.fail = True

    r = client.post("/api/capture/window", json={"windowId": 5})
    assert r.status_code == 502
    assert app.state.capture_state.current().window_id is None


def test_desktop_capture(client, app, fake_capture_client):
    app.state.capture_state.switch_to_window(3)

    r = client.post("/api/capture/desktop")
    assert r.status_code == 200
    assert r.json()["status"] == "desktop_capture_started"
    assert fake_capture_client.calls == [("desktop", 0)]
    assert app.state.capture_state.current().window_id is None


def test_display_metrics(client):
    r = client.get("/api/display")
    assert r.status_code == 200
    assert r.json()["physicalWidth"] == 3840

    r = client.get("/api/display", params={"refresh": "true"})
    assert r.status_code == 200
