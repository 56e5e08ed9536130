"""
Identity resolvers: turn login input into a persisted Session.

Two channels share one contract, `resolve(...) -> Session` or `ResolutionFailed`:

- CredentialResolver: e-mail + password via POST /auth/login. The caller must
  have passed the challenge gate first; this module does not check it.
- ProofTokenResolver: a decoded QR payload via POST /auth/qr. Never involves
  the challenge gate.

On success both persist the session through the SessionStore, which is the
only write access to it outside logout and the expiry handler.

Security: Never log passwords, tokens or QR payloads.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from datavault.identity_access.domain import Session
from datavault.identity_access.stores import SessionStore
from datavault.remote.client import RemoteClient, error_text
from datavault.remote.errors import DataVaultError, RemoteError, RemoteRejection, ShapeViolation

logger = logging.getLogger("datavault.identity_access")

LOGIN_FAILED = "Login failed. Please try again."
QR_LOGIN_FAILED = "QR login failed. Please try again."


class ResolutionFailed(DataVaultError):
    """Login did not produce a session; `message` is safe to show."""

    code = "resolution_failed"

    def __init__(self, message: str, *, cause: RemoteError | None = None):
        super().__init__(message)
        self.cause = cause


def session_from_response(data: Any) -> Session:
    """Build a Session from the `{token, role, userId}` login response."""
    if not isinstance(data, Mapping):
        raise ShapeViolation()
    token = data.get("token")
    role = data.get("role")
    subject = data.get("userId")
    if not isinstance(token, str) or not isinstance(role, str) or subject is None or isinstance(subject, bool):
        raise ShapeViolation()
    try:
        return Session(token=token, role=role, subject_id=str(subject))
    except PydanticValidationError as exc:
        raise ShapeViolation() from exc


def _failure_text(exc: RemoteError, fallback: str) -> str:
    # Only the server's own error text is shown; anything else gets the fallback.
    if isinstance(exc, RemoteRejection):
        return error_text(exc.body) or fallback
    return fallback


class _Resolver:
    channel = "unknown"
    fallback = LOGIN_FAILED

    def __init__(self, *, remote: RemoteClient, store: SessionStore):
        self._remote = remote
        self._store = store

    async def _establish(self, call) -> Session:
        try:
            data = await call()
            session = session_from_response(data)
        except RemoteError as exc:
            logger.info("login.failed channel=%s code=%s", self.channel, exc.code)
            raise ResolutionFailed(_failure_text(exc, self.fallback), cause=exc) from exc
        self._store.create(session)
        logger.info("login.succeeded channel=%s role=%s", self.channel, session.role)
        return session


class CredentialResolver(_Resolver):
    channel = "credentials"
    fallback = LOGIN_FAILED

    async def resolve(self, email: str, password: str) -> Session:
        return await self._establish(lambda: self._remote.login(email=email, password=password))


class ProofTokenResolver(_Resolver):
    channel = "qr"
    fallback = QR_LOGIN_FAILED

    async def resolve(self, payload: str) -> Session:
        return await self._establish(lambda: self._remote.login_with_qr(payload))


__all__ = [
    "LOGIN_FAILED",
    "QR_LOGIN_FAILED",
    "ResolutionFailed",
    "CredentialResolver",
    "ProofTokenResolver",
    "session_from_response",
]
