"""
Async client for the Data Vault REST backend.

Design:
- One thin method per backend operation; methods return decoded JSON as-is.
  Shape checks and normalization happen in the caller (records/normalize.py),
  so this module stays a transport adapter.
- Every request carries the session token as a bearer credential when one
  exists. Methods that need a session refuse to run without one and never
  touch the network in that case.
- 401/403 responses whose error text matches a known "session invalid"
  signature trigger `on_session_invalid` before SessionInvalid is raised.
  This is the only failure handled globally; everything else is raised to
  the issuing panel.

Security: Never log request bodies, tokens or QR payloads.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from datavault.config import Settings
from datavault.identity_access.domain import matches_session_invalid
from datavault.remote.errors import (
    GENERIC_DETAIL,
    RemoteRejection,
    SessionInvalid,
    TransportError,
)

LOG = logging.getLogger("datavault.remote")

TokenProvider = Callable[[], Optional[str]]


def _segment(value: object) -> str:
    return quote(str(value), safe="")


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def error_text(body: object) -> Optional[str]:
    """Return the server's error message from a decoded error body, if any."""
    if isinstance(body, Mapping):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    if isinstance(body, str) and body.strip():
        return body
    return None


def _signature_text(body: object) -> str:
    text = error_text(body)
    if text:
        return text
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return ""


class RemoteClient:
    def __init__(
        self,
        *,
        base_url: str,
        token_provider: TokenProvider,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_session_invalid: Optional[Callable[[], None]] = None,
    ) -> None:
        self._token_provider = token_provider
        self.on_session_invalid = on_session_invalid
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        token_provider: TokenProvider,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RemoteClient":
        return cls(
            base_url=settings.api_url,
            token_provider=token_provider,
            timeout=float(settings.http_timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ core

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Optional[Mapping[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        token = self._token_provider()
        if authenticated and not token:
            LOG.info("remote.skipped reason=no_session method=%s path=%s", method, path)
            raise SessionInvalid("Not authenticated. Please log in.")
        headers: Dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = await self._http.request(
                method,
                path,
                json=json_body,
                params=dict(params) if params else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            LOG.warning("remote.transport_failed method=%s path=%s error=%s", method, path, type(exc).__name__)
            raise TransportError() from exc

        body = _decode(resp)
        if resp.status_code >= 400:
            if resp.status_code in (401, 403) and matches_session_invalid(_signature_text(body)):
                LOG.info("remote.session_invalid status=%s path=%s", resp.status_code, path)
                if self.on_session_invalid is not None:
                    self.on_session_invalid()
                raise SessionInvalid()
            LOG.info("remote.rejected status=%s method=%s path=%s", resp.status_code, method, path)
            raise RemoteRejection(error_text(body) or GENERIC_DETAIL, status_code=resp.status_code, body=body)
        return body

    # ------------------------------------------------------------------ auth

    async def login(self, *, email: str, password: str) -> Any:
        return await self.request(
            "POST", "/auth/login", json_body={"email": email, "password": password}, authenticated=False
        )

    async def login_with_qr(self, qr: str) -> Any:
        return await self.request("POST", "/auth/qr", json_body={"qr": qr}, authenticated=False)

    async def register_user(self, payload: Mapping[str, Any]) -> Any:
        return await self.request("POST", "/auth/register", json_body=dict(payload))

    # ------------------------------------------------------------------ admin

    async def list_users(self) -> Any:
        return await self.request("GET", "/users")

    async def get_user(self, user_id: str) -> Any:
        return await self.request("GET", f"/users/{_segment(user_id)}")

    async def update_user(self, user_id: str, payload: Mapping[str, Any]) -> Any:
        return await self.request("PUT", f"/users/{_segment(user_id)}", json_body=dict(payload))

    async def delete_user(self, user_id: str) -> Any:
        return await self.request("DELETE", f"/users/{_segment(user_id)}")

    async def generate_qr(self, user_id: str) -> Any:
        return await self.request("POST", f"/users/generate-qr/{_segment(user_id)}")

    async def id_card(self, user_id: str) -> Any:
        return await self.request("GET", f"/users/id-card/{_segment(user_id)}")

    async def list_logs(self, params: Optional[Mapping[str, str]] = None) -> Any:
        return await self.request("GET", "/logs", params=params)

    async def verify_logs(self) -> Any:
        return await self.request("GET", "/logs/verify")

    # ------------------------------------------------------------------ teacher

    async def teaching_courses(self) -> Any:
        return await self.request("GET", "/users/courses/teaching")

    async def course_students(self, course_code: str) -> Any:
        return await self.request("GET", f"/users/courses/{_segment(course_code)}/students")

    async def update_grade(self, *, student_id: str, course_code: str, grade: str) -> Any:
        return await self.request(
            "PATCH",
            f"/users/{_segment(student_id)}/grades",
            json_body={"courseCode": course_code, "grade": grade},
        )

    # ------------------------------------------------------------------ student

    async def available_courses(self) -> Any:
        return await self.request("GET", "/users/courses/available")

    async def student_results(self) -> Any:
        return await self.request("GET", "/users/result/result")

    async def register_courses(self, courses: Sequence[Mapping[str, Any]]) -> Any:
        return await self.request("PATCH", "/users/register-courses", json_body={"courses": [dict(c) for c in courses]})

    async def request_deletion(self) -> Any:
        return await self.request("POST", "/users/delete")

    # ------------------------------------------------------------------ parent

    async def child_records(self) -> Any:
        return await self.request("GET", "/users/parent/student")


__all__ = ["RemoteClient", "TokenProvider", "error_text"]
