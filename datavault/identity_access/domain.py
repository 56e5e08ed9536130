"""
Identity domain: roles and the Session value object.

Why:
- Centralize the role names so the dispatcher, the stores and the remote client
  cannot drift apart.
- Keep the Session immutable; only the identity resolvers create one and only
  logout or an expiry signal destroy it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Roles the backend hands out at login (wire spelling)."""

    ADMIN = "Admin"
    TEACHER = "Teacher"
    STUDENT = "Student"
    PARENT = "Parent"


# Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(role.value for role in Role)

# Error texts the backend uses when a bearer token is no longer accepted.
SESSION_INVALID_SIGNATURES = (
    "jwt expired",
    "Token verification failed",
    "Unauthorized - Invalid token",
)


class Session(BaseModel):
    """Authenticated identity context held by the client.

    `role` stays a plain string: a stored or returned role outside
    ALLOWED_ROLES must still produce a session so the dashboard can show its
    terminal "unknown role" state instead of failing the login.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1)
    role: str
    subject_id: str = Field(min_length=1)

    @property
    def known_role(self) -> Role | None:
        try:
            return Role(self.role)
        except ValueError:
            return None


def matches_session_invalid(text: str) -> bool:
    return any(signature in (text or "") for signature in SESSION_INVALID_SIGNATURES)


__all__ = ["Role", "ALLOWED_ROLES", "SESSION_INVALID_SIGNATURES", "Session", "matches_session_invalid"]
