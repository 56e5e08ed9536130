"""
Client-side key-value areas and the SessionStore.

Why: The session must survive a restart of the console the same way a browser
keeps it in local storage. The store writes exactly three keys (`token`,
`role`, `userId`) into a key-value area and is the only writer of those keys.

Security: Tokens are persisted as-is; the JSON file area is created with
owner-only permissions. Never log the token.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from datavault.identity_access.domain import Session
from datavault.signals import Signal

logger = logging.getLogger("datavault.identity_access")

TOKEN_KEY = "token"
ROLE_KEY = "role"
SUBJECT_KEY = "userId"


class KeyValueArea(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryArea:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileArea:
    """Key-value area persisted as a flat JSON object on disk.

    A missing or corrupt file reads as empty; the next write replaces it.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("session_area.unreadable path=%s", self.path)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(tmp, 0o600)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            data.pop(key)
            self._write(data)


class SessionStore:
    """Holds the one live Session and mirrors it into a key-value area.

    Read access is open (`current`, `token`); `create` is reserved for the
    identity resolvers and `clear` for logout and the expiry handler.
    Subscribers of `changed` receive the new Session or None.
    """

    def __init__(self, area: KeyValueArea):
        self._area = area
        self._current: Optional[Session] = None
        self.changed: Signal[Optional[Session]] = Signal("session.changed")

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def token(self) -> Optional[str]:
        return self._current.token if self._current else None

    def load(self) -> Optional[Session]:
        """Restore the session from the area (call once on startup).

        Incomplete or invalid entries are discarded so a half-written session
        never reaches the dashboard.
        """
        token = self._area.get(TOKEN_KEY)
        role = self._area.get(ROLE_KEY)
        subject_id = self._area.get(SUBJECT_KEY)
        if not token:
            self._current = None
            return None
        try:
            session = Session(token=token, role=role or "", subject_id=subject_id or "")
        except PydanticValidationError:
            logger.warning("session.restore_discarded reason=incomplete")
            self._wipe()
            self._current = None
            return None
        self._current = session
        logger.info("session.restored role=%s", session.role)
        self.changed.emit(session)
        return session

    def create(self, session: Session) -> Session:
        self._area.set(TOKEN_KEY, session.token)
        self._area.set(ROLE_KEY, session.role)
        self._area.set(SUBJECT_KEY, session.subject_id)
        self._current = session
        logger.info("session.created role=%s", session.role)
        self.changed.emit(session)
        return session

    def clear(self, *, reason: str = "logout") -> None:
        had_session = self._current is not None
        self._wipe()
        self._current = None
        if had_session:
            logger.info("session.cleared reason=%s", reason)
            self.changed.emit(None)

    def _wipe(self) -> None:
        for key in (TOKEN_KEY, SUBJECT_KEY, ROLE_KEY):
            self._area.remove(key)


__all__ = [
    "KeyValueArea",
    "MemoryArea",
    "JsonFileArea",
    "SessionStore",
    "TOKEN_KEY",
    "ROLE_KEY",
    "SUBJECT_KEY",
]
