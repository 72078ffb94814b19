"""Runtime configuration for the relay backend.

Settings are collected under core/ and read from environment variables
(pydantic-settings is not used).
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import shlex
import sys


FRAME_SOURCES = ("http", "process", "none")
INPUT_BACKENDS = ("native", "xdotool")


@dataclass(frozen=True)
class Settings:
    """Relay backend settings"""

    capture_api_url: str
    frame_source: str
    frame_poll_interval_sec: float
    capture_command: list[str]
    demux_max_buffer_bytes: int
    viewer_queue_size: int
    click_offset_x: int
    click_offset_y: int
    default_scale_factor: float
    upstream_timeout_sec: float
    signaling_session_ttl_sec: float
    input_backend: str
    x_display: str
    window_list_tool: str
    cors_allow_origins: list[str]
    log_level: str
    debug_coords: bool


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def default_capture_command(x_display: str) -> list[str]:
    """ffmpeg command emitting back-to-back JPEG frames on stdout."""

    if sys.platform == "darwin":
        return [
            "ffmpeg",
            "-f", "avfoundation",
            "-pixel_format", "uyvy422",
            "-framerate", "15",
            "-i", "5:none",
            "-vf", "scale=1600:900,fps=15",
            "-q:v", "5",
            "-f", "image2pipe",
            "-vcodec", "mjpeg",
            "pipe:1",
        ]
    return [
        "ffmpeg",
        "-loglevel", "error",
        "-nostdin",
        "-f", "x11grab",
        "-video_size", "1600x1200",
        "-framerate", "30",
        "-i", x_display,
        "-vf", "scale=1024:768",
        "-q:v", "3",
        "-f", "image2pipe",
        "-vcodec", "mjpeg",
        "pipe:1",
    ]


def load_settings() -> Settings:
    """環境変数から Settings を生成する。"""

    capture_api_url = os.environ.get("CAPTURE_API_URL", "http://127.0.0.1:8080").rstrip("/")

    frame_source = os.environ.get("FRAME_SOURCE", "http").strip().lower()
    if frame_source not in FRAME_SOURCES:
        raise ValueError(f"FRAME_SOURCE must be one of {FRAME_SOURCES}: {frame_source}")

    # ~30 fps by default; never spin faster than 1 ms
    frame_poll_interval_sec = max(0.001, _env_int("FRAME_POLL_INTERVAL_MS", 33) / 1000.0)

    x_display = os.environ.get("X_DISPLAY") or os.environ.get("DISPLAY") or ":20.0"

    capture_command_env = os.environ.get("CAPTURE_COMMAND")
    if capture_command_env:
        capture_command = shlex.split(capture_command_env)
    else:
        capture_command = default_capture_command(x_display)

    demux_max_buffer_bytes = max(64 * 1024, _env_int("DEMUX_MAX_BUFFER_BYTES", 8 * 1024 * 1024))
    viewer_queue_size = max(1, _env_int("VIEWER_QUEUE_SIZE", 4))

    default_scale_factor = _env_float("DEFAULT_SCALE_FACTOR", 2.0)
    if default_scale_factor <= 0:
        default_scale_factor = 2.0

    upstream_timeout_sec = max(0.1, _env_float("UPSTREAM_TIMEOUT_SEC", 2.0))
    signaling_session_ttl_sec = max(0.0, _env_float("SIGNALING_SESSION_TTL_SEC", 600.0))

    input_backend = os.environ.get("INPUT_BACKEND", "native").strip().lower()
    if input_backend not in INPUT_BACKENDS:
        raise ValueError(f"INPUT_BACKEND must be one of {INPUT_BACKENDS}: {input_backend}")

    window_list_tool_env = os.environ.get("WINDOW_LIST_TOOL")
    if window_list_tool_env:
        window_list_tool = window_list_tool_env
    else:
        # Docker では /app/native/osx/list_windows_cg を想定しているが、ローカル実行時は
        # このリポジトリ配下の native/ を使う。
        candidates = [
            Path("/app/native/osx/list_windows_cg"),
            Path(__file__).resolve().parents[3] / "native" / "osx" / "list_windows_cg",
        ]
        window_list_tool = str(next((p for p in candidates if p.exists()), candidates[0]))

    cors = os.environ.get("CORS_ALLOW_ORIGINS", "*")
    cors_allow_origins = [o.strip() for o in cors.split(",") if o.strip()]

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper()

    return Settings(
        capture_api_url=capture_api_url,
        frame_source=frame_source,
        frame_poll_interval_sec=frame_poll_interval_sec,
        capture_command=capture_command,
        demux_max_buffer_bytes=demux_max_buffer_bytes,
        viewer_queue_size=viewer_queue_size,
        click_offset_x=_env_int("CLICK_OFFSET_X", 0),
        click_offset_y=_env_int("CLICK_OFFSET_Y", 0),
        default_scale_factor=default_scale_factor,
        upstream_timeout_sec=upstream_timeout_sec,
        signaling_session_ttl_sec=signaling_session_ttl_sec,
        input_backend=input_backend,
        x_display=x_display,
        window_list_tool=window_list_tool,
        cors_allow_origins=cors_allow_origins,
        log_level=log_level,
        debug_coords=_env_bool("DEBUG_COORDS"),
    )
