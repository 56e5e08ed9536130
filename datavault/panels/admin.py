"""
Admin panel: user management, audit logs, log integrity and ID cards.

Views:
    dashboard            users + logs, aggregated by `summary()`
    users                user list, detail selection, registration, delete, QR
    logs                 filtered audit log
    id-cards             user list for ID card generation
    intrusion-detection  logs + hash verification report (run once if absent)
    edit-profile         reads the stashed `editing_user`; no fetch
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Tuple

from datavault.identity_access.domain import Role
from datavault.panels.base import Fetch, LogFilter, PanelController, Screen
from datavault.records.normalize import (
    NOT_AVAILABLE,
    PROTECTED,
    UNKNOWN_ID,
    UNKNOWN_ROLE,
    UNNAMED_USER,
    normalize_logs,
    normalize_user,
    normalize_users,
    normalize_verification,
    string_list,
)

RECENT_ACTIVITY_WINDOW = 50
RECENT_LOGS_SHOWN = 5

# Accepted aliases for LogFilter fields (form names and wire names).
_FILTER_ALIASES = {
    "userId": "subject_id",
    "subject_id": "subject_id",
    "role": "role",
    "action": "action",
    "from": "from_",
    "from_": "from_",
    "to": "to",
}

REGISTER_REQUIRED = ("fullName", "email", "password", "role")


def _text(form: Mapping[str, Any], key: str) -> str:
    value = form.get(key)
    return value.strip() if isinstance(value, str) else ""


class AdminPanel(PanelController):
    role = Role.ADMIN.value
    home_view = "dashboard"
    views = frozenset({"dashboard", "users", "logs", "id-cards", "intrusion-detection", "edit-profile"})
    fetches = {
        "users": Fetch("_load_users", "load users"),
        "logs": Fetch("_load_logs", "load logs"),
        "verification": Fetch("_load_verification", "verify logs", empty=lambda: None),
    }
    view_fetches = {
        "dashboard": ("users", "logs"),
        "users": ("users",),
        "logs": ("logs",),
        "id-cards": ("users",),
        "intrusion-detection": ("logs",),
        "edit-profile": (),
    }

    def needs(self, view: str) -> Tuple[str, ...]:
        slots = super().needs(view)
        if view == "intrusion-detection" and self.state.records.get("verification") is None:
            slots += ("verification",)
        return slots

    def fetch_params(self, slot: str) -> Dict[str, Any]:
        if slot == "logs":
            return self.state.filter.to_query()
        return {}

    # ------------------------------------------------------------- loaders

    async def _load_users(self) -> List[Dict[str, Any]]:
        return normalize_users(await self.remote.list_users())

    async def _load_logs(self, **query: str) -> List[Dict[str, Any]]:
        return normalize_logs(await self.remote.list_logs(query or None))

    async def _load_verification(self) -> Dict[str, Any]:
        return normalize_verification(await self.remote.verify_logs())

    # ------------------------------------------------------------- reads

    @property
    def users(self) -> List[Dict[str, Any]]:
        return self.state.records["users"]

    @property
    def logs(self) -> List[Dict[str, Any]]:
        return self.state.records["logs"]

    @property
    def verification(self) -> Optional[Dict[str, Any]]:
        return self.state.records["verification"]

    async def refresh_users(self) -> None:
        await self.refresh("users")

    async def refresh_logs(self) -> None:
        await self.refresh("logs")

    async def verify_logs(self) -> None:
        """Run the server-side hash check over all log entries."""
        self.state.records["verification"] = None
        await self.refresh("verification")

    # ------------------------------------------------------------- filter

    def set_filter(self, **fields: str) -> LogFilter:
        for name, value in fields.items():
            attr = _FILTER_ALIASES.get(name)
            if attr is None:
                raise ValueError(f"unknown log filter field: {name}")
            setattr(self.state.filter, attr, value or "")
        return self.state.filter

    async def apply_filter(self) -> None:
        await self.refresh("logs")

    async def clear_filter(self) -> None:
        self.state.filter = LogFilter()
        await self.refresh("logs")

    # ------------------------------------------------------------- selection

    def select_user(self, user: Mapping[str, Any]) -> None:
        self.state.selection.user = normalize_user(user)
        self._emit()

    def clear_selected_user(self) -> None:
        self.state.selection.user = None
        self._emit()

    def edit_user(self, user: Mapping[str, Any]) -> None:
        """Stash the target and switch to the edit view."""
        self.state.selection.editing_user = normalize_user(user)
        self.router.navigate("edit-profile")

    # ------------------------------------------------------------- mutations

    async def submit_edit(self, form: Mapping[str, Any]) -> bool:
        target = self.state.selection.editing_user
        if target is None:
            self.fail("No user selected for editing")
            return False
        user_id = target["userId"]
        if user_id == UNKNOWN_ID:
            self.fail("Invalid user ID")
            return False
        # Display placeholders from normalization are never written back.
        payload: Dict[str, Any] = {}
        full_name = _text(form, "fullName") or target["fullName"]
        if full_name != UNNAMED_USER:
            payload["fullName"] = full_name
        role = _text(form, "role") or target["role"]
        if role != UNKNOWN_ROLE:
            payload["role"] = role
        email = _text(form, "email") or target["email"]
        if email not in (PROTECTED, NOT_AVAILABLE):
            payload["email"] = email
        password = form.get("password")
        if isinstance(password, str) and password.strip():
            payload["password"] = password
        if role == Role.STUDENT.value:
            payload["class"] = _text(form, "class") or target["class"]
        elif role == Role.TEACHER.value:
            courses = form.get("coursesTeaching", target["coursesTeaching"])
            payload["coursesTeaching"] = string_list(courses)

        ok, _ = await self._call("update user", lambda: self.remote.update_user(user_id, payload))
        if not ok:
            return False
        self.log.info("admin.user_updated user_id=%s", user_id)
        self.state.selection.editing_user = None
        self.succeed("User updated successfully")
        self.request("users")
        self.router.navigate("users")
        return True

    async def register_user(self, form: Mapping[str, Any]) -> bool:
        missing = [name for name in REGISTER_REQUIRED if not _text(form, name)]
        if missing:
            self.fail(f"Missing required field: {missing[0]}")
            return False
        role = _text(form, "role")
        payload: Dict[str, Any] = {
            "fullName": _text(form, "fullName"),
            "email": _text(form, "email"),
            "password": form["password"],
            "role": role,
            "class": _text(form, "class"),
        }
        if role == Role.TEACHER.value:
            payload["coursesTeaching"] = string_list(form.get("coursesTeaching"))
        elif role == Role.PARENT.value:
            payload["linkedStudentId"] = _text(form, "linkedStudentId")

        ok, _ = await self._call("register user", lambda: self.remote.register_user(payload))
        if not ok:
            return False
        self.log.info("admin.user_registered role=%s", role)
        self.succeed("User registered successfully!")
        await self.refresh("users")
        return True

    async def delete_user(self, user_id: str) -> bool:
        if not user_id:
            self.fail("Invalid user ID")
            return False
        ok, _ = await self._call("delete user", lambda: self.remote.delete_user(user_id))
        if not ok:
            return False
        selected = self.state.selection.user
        if selected is not None and selected["userId"] == user_id:
            self.state.selection.user = None
        self.log.info("admin.user_deleted user_id=%s", user_id)
        self.succeed(f"User {user_id} deleted successfully")
        await self.refresh("users")
        return True

    async def generate_qr(self, user_id: str) -> Any:
        if not user_id:
            self.fail("Invalid user ID")
            return None
        ok, result = await self._call("generate QR code", lambda: self.remote.generate_qr(user_id))
        if not ok:
            return None
        self.succeed("QR Code generated successfully")
        await self.refresh("users")
        return result

    async def generate_id_card(self, user_id: str) -> Optional[str]:
        """Return the printable ID card markup for one user."""
        if not user_id:
            self.fail("Invalid user ID")
            return None
        ok, result = await self._call("generate ID card", lambda: self.remote.id_card(user_id))
        if not ok:
            return None
        html = result.get("html") if isinstance(result, Mapping) else None
        if not isinstance(html, str) or not html:
            self.fail("Failed to generate ID card: Invalid ID card data received")
            return None
        return html

    # ------------------------------------------------------------- aggregates

    def summary(self) -> Dict[str, Any]:
        """Dashboard aggregates over the records currently held."""
        roles = Counter(user["role"] for user in self.users)
        activity = Counter(log["action"] for log in self.logs[:RECENT_ACTIVITY_WINDOW])
        security = {"valid": 100, "invalid": 0}
        report = self.verification
        if report is not None:
            security = {"valid": report["validLogs"], "invalid": report["invalidLogs"]}
        return {
            "total_users": len(self.users),
            "total_logs": len(self.logs),
            "role_distribution": dict(roles),
            "recent_activity": dict(activity),
            "security": security,
            "recent_logs": self.logs[:RECENT_LOGS_SHOWN],
        }

    # ------------------------------------------------------------- screens

    def screen_dashboard(self) -> Screen:
        return self._screen("ready", summary=self.summary())

    def screen_users(self) -> Screen:
        return self._screen("ready", users=self.users, selected=self.state.selection.user)

    def screen_logs(self) -> Screen:
        return self._screen("ready", logs=self.logs, filter=self.state.filter)

    def screen_id_cards(self) -> Screen:
        return self._screen("ready", users=self.users)

    def screen_intrusion_detection(self) -> Screen:
        return self._screen("ready", verification=self.verification, logs=self.logs)

    def screen_edit_profile(self) -> Screen:
        target = self.state.selection.editing_user
        if target is None:
            return self._screen("no_selection", message="No user selected for editing. Return to the user list.")
        return self._screen("ready", user=target)


__all__ = ["AdminPanel"]
