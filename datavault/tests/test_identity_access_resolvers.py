"""
Identity resolvers against the fake backend.
"""
from __future__ import annotations

import httpx
import pytest

from datavault.identity_access.domain import Session
from datavault.identity_access.resolvers import (
    LOGIN_FAILED,
    QR_LOGIN_FAILED,
    CredentialResolver,
    ProofTokenResolver,
    ResolutionFailed,
    session_from_response,
)
from datavault.identity_access.stores import MemoryArea, SessionStore
from datavault.remote.client import RemoteClient
from datavault.remote.errors import ShapeViolation

pytestmark = pytest.mark.anyio


def _wire(transport):
    store = SessionStore(MemoryArea())
    remote = RemoteClient(base_url="http://test/api", token_provider=lambda: store.token, transport=transport)
    return store, remote


async def test_credential_login_persists_session(vault):
    store, remote = _wire(vault.transport())
    async with remote:
        session = await CredentialResolver(remote=remote, store=store).resolve("ada@example.com", "secret")
    assert session == Session(token="admin-token", role="Admin", subject_id="A1")
    assert store.current == session


async def test_credential_failure_surfaces_server_text(vault):
    store, remote = _wire(vault.transport())
    async with remote:
        with pytest.raises(ResolutionFailed) as excinfo:
            await CredentialResolver(remote=remote, store=store).resolve("ada@example.com", "nope")
    assert excinfo.value.message == "Invalid credentials"
    assert store.current is None


async def test_credential_failure_without_text_uses_fallback(vault):
    vault.overrides["POST /auth/login"] = (500, {})
    store, remote = _wire(vault.transport())
    async with remote:
        with pytest.raises(ResolutionFailed) as excinfo:
            await CredentialResolver(remote=remote, store=store).resolve("ada@example.com", "secret")
    assert excinfo.value.message == LOGIN_FAILED


async def test_network_failure_uses_fallback():
    def boom(request):
        raise httpx.ConnectError("down", request=request)

    store, remote = _wire(httpx.MockTransport(boom))
    async with remote:
        with pytest.raises(ResolutionFailed) as excinfo:
            await ProofTokenResolver(remote=remote, store=store).resolve("QR-S1")
    assert excinfo.value.message == QR_LOGIN_FAILED


async def test_qr_login_persists_session(vault):
    store, remote = _wire(vault.transport())
    async with remote:
        session = await ProofTokenResolver(remote=remote, store=store).resolve("QR-S1")
    assert session.role == "Student"
    assert store.token == "student-token"
    assert vault.calls[0].body == {"qr": "QR-S1"}


async def test_qr_login_rejection_surfaces_server_text(vault):
    store, remote = _wire(vault.transport())
    async with remote:
        with pytest.raises(ResolutionFailed) as excinfo:
            await ProofTokenResolver(remote=remote, store=store).resolve("QR-unknown")
    assert excinfo.value.message == "Invalid QR code"


async def test_malformed_login_response_is_rejected(vault):
    vault.overrides["POST /auth/login"] = (200, {"token": "t"})
    store, remote = _wire(vault.transport())
    async with remote:
        with pytest.raises(ResolutionFailed) as excinfo:
            await CredentialResolver(remote=remote, store=store).resolve("ada@example.com", "secret")
    assert isinstance(excinfo.value.cause, ShapeViolation)
    assert excinfo.value.message == LOGIN_FAILED
    assert store.current is None


@pytest.mark.parametrize(
    "data",
    [None, [], {"token": "", "role": "Admin", "userId": "A1"}, {"token": "t", "role": "Admin", "userId": True}],
)
def test_session_from_response_rejects_bad_shapes(data):
    with pytest.raises(ShapeViolation):
        session_from_response(data)


def test_session_from_response_accepts_numeric_user_id():
    assert session_from_response({"token": "t", "role": "Parent", "userId": 42}).subject_id == "42"
