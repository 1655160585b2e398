"""Exception hierarchy for the tracker.

Transport errors feed the reconnect path, request errors are raised to the
single caller that issued the request, and frame errors are logged and
dropped by the router.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all tracker errors."""


class FrameError(TrackerError):
    """An inbound frame could not be decoded."""


class RequestError(TrackerError):
    """A correlated request did not produce a usable response."""


class TransportLostError(RequestError):
    """The socket to OBS closed while the request was pending."""

    def __init__(self, reason: str = "transport lost"):
        super().__init__(reason)
        self.reason = reason


class NotReadyError(RequestError):
    """A request was issued before the handshake completed."""

    def __init__(self, request_type: str):
        super().__init__(f"Cannot send {request_type}: connection not ready")
        self.request_type = request_type


class RequestTimeoutError(RequestError):
    """No response arrived within the request timeout."""

    def __init__(self, request_type: str, timeout: float):
        super().__init__(f"Request timeout: {request_type} got no response within {timeout}s")
        self.request_type = request_type
        self.timeout = timeout


class RequestFailedError(RequestError):
    """OBS answered the request with a failure status."""

    def __init__(self, request_type: str, code: int | None, comment: str | None = None):
        message = f"{request_type} failed with status {code}"
        if comment:
            message = f"{message}: {comment}"
        super().__init__(message)
        self.request_type = request_type
        self.code = code
        self.comment = comment
