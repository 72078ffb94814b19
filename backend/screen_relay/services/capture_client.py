"""HTTP client for the native capture process.

The native ScreenCaptureKit server (``screencap7 8080``) exposes:

- GET  /frame           one JPEG
- GET  /display         {width, height, physicalWidth, physicalHeight, scaleFactor}
- POST /capture         {type, index, vp9}       desktop capture
- POST /capture-window  {cgWindowID, vp9}        window capture
- POST /click           {x, y}
- POST /click-window    {x, y, cgWindowID}
- POST /key             {key, modifiers}
- POST /key-window      {key, modifiers, cgWindowID}

Every transport error and non-2xx response is raised as UpstreamUnavailable.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import DisplayMetrics

logger = logging.getLogger(__name__)


class CaptureClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        *,
        timeout_sec: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_sec),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CaptureClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, payload: Optional[dict[str, Any]] = None) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{method} {path} failed: {e!r}") from e

        if response.is_error:
            raise UpstreamUnavailable(f"{method} {path} returned {response.status_code}")
        return response

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", path, payload)
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {"result": body}

    # -- frames / metrics ---------------------------------------------------

    async def get_frame(self) -> bytes:
        response = await self._request("GET", "/frame")
        return response.content

    async def get_display_metrics(self) -> DisplayMetrics:
        response = await self._request("GET", "/display")
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"GET /display returned invalid JSON: {e}") from e
        return DisplayMetrics.from_dict(data)

    # -- capture target -----------------------------------------------------

    async def start_desktop_capture(self, *, display_index: int = 0) -> dict[str, Any]:
        return await self._post_json("/capture", {"type": 0, "index": display_index, "vp9": False})

    async def capture_window(self, window_id: int) -> dict[str, Any]:
        return await self._post_json("/capture-window", {"cgWindowID": int(window_id), "vp9": False})

    # -- input --------------------------------------------------------------

    async def click(self, x: int, y: int, *, window_id: Optional[int] = None) -> dict[str, Any]:
        if window_id is not None:
            return await self._post_json("/click-window", {"x": x, "y": y, "cgWindowID": window_id})
        return await self._post_json("/click", {"x": x, "y": y})

    async def key(
        self,
        key: str,
        modifiers: list[str],
        *,
        window_id: Optional[int] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"key": key, "modifiers": list(modifiers)}
        if window_id is not None:
            payload["cgWindowID"] = window_id
            return await self._post_json("/key-window", payload)
        return await self._post_json("/key", payload)
