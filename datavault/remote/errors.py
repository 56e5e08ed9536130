"""
Error taxonomy for the dashboard controller.

Intent:
    Give every failure a controller can observe a small, explicit class so the
    panels can decide locally how to surface it. The split mirrors how the
    failures are handled:

    - ValidationError: local and recoverable; no network call was made.
    - RemoteRejection: the backend answered with 4xx/5xx and an error body.
    - TransportError: no response at all (connection refused, timeout).
    - ShapeViolation: the backend answered 2xx but with the wrong JSON shape.
    - SessionInvalid: the session is gone or expired; fatal to the session
      only, handled globally by the application shell.

Notes:
    Every exception carries a human-readable `message` that can be shown as
    is, and a short machine `code` for logs and tests.
"""

from __future__ import annotations

from typing import Optional


GENERIC_DETAIL = "Unknown error"
NETWORK_ERROR = "Network error"
INVALID_FORMAT = "Invalid data format received from server"


class DataVaultError(Exception):
    """Base class for all controller-visible failures."""

    code = "error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(DataVaultError):
    """Local input problem (challenge mismatch, missing field)."""

    code = "validation"


class ChallengeMismatch(ValidationError):
    code = "challenge_mismatch"

    def __init__(self, message: str = "Incorrect CAPTCHA. Please try again."):
        super().__init__(message)


class RemoteError(DataVaultError):
    """Base class for failures that involve the remote source."""

    code = "remote"


class RemoteRejection(RemoteError):
    """The backend rejected the request with a structured error body."""

    code = "rejected"

    def __init__(self, message: str, *, status_code: int, body: object = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportError(RemoteError):
    """No usable response reached the client."""

    code = "transport"

    def __init__(self, message: str = NETWORK_ERROR):
        super().__init__(message)


class ShapeViolation(RemoteError):
    """A 2xx response whose JSON does not have the expected shape."""

    code = "shape"

    def __init__(self, message: str = INVALID_FORMAT):
        super().__init__(message)


class SessionInvalid(RemoteError):
    """No live session, or the backend reported it as expired/invalid."""

    code = "session_invalid"

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(message)


def describe(exc: BaseException) -> str:
    """Return the detail text for a failure, falling back to a generic one."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message.strip():
        return message
    return GENERIC_DETAIL


__all__ = [
    "GENERIC_DETAIL",
    "NETWORK_ERROR",
    "INVALID_FORMAT",
    "DataVaultError",
    "ValidationError",
    "ChallengeMismatch",
    "RemoteError",
    "RemoteRejection",
    "TransportError",
    "ShapeViolation",
    "SessionInvalid",
    "describe",
]
