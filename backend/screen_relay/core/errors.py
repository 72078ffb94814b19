"""Domain errors.

Each error carries a machine readable ``code`` that WebSocket endpoints send
back as ``{"type": "error", "code": ..., "message": ...}``.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for relay errors."""

    default_code = "RELAY_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(f"{self.code}: {message}")


class NotFoundError(RelayError):
    """Unknown (or expired) signaling session."""

    default_code = "NOT_FOUND"


class UpstreamUnavailable(RelayError):
    """The capture process could not be reached or refused the request."""

    default_code = "UPSTREAM_UNAVAILABLE"


class MalformedInput(RelayError):
    """A viewer message that could not be parsed."""

    default_code = "MALFORMED_INPUT"
