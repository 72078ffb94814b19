from __future__ import annotations

from screen_relay.api.endpoints import windows as windows_ep
from screen_relay.services.window_list import WindowListError


def test_windows_lists_tool_output(client, monkeypatch):
    seen: list[str] = []

    async def fake_list_windows(tool_path: str):
        seen.append(tool_path)
        return [{"cgWindowID": 101, "app": "Safari", "title": "Docs", "x": 0, "y": 25, "width": 1200, "height": 800}]

    monkeypatch.setattr(windows_ep, "list_windows", fake_list_windows)

    r = client.get("/api/windows")
    assert r.status_code == 200
    assert r.json()[0]["cgWindowID"] == 101
    assert seen == ["/nonexistent/list_windows_cg"]


def test_windows_tool_failure_is_500(client, monkeypatch):
    async def failing_list_windows(tool_path: str):
        raise WindowListError("exited with 1")

    monkeypatch.setattr(windows_ep, "list_windows", failing_list_windows)

    r = client.get("/api/windows")
    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to get windows"}
