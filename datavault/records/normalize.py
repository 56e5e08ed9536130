"""
Normalization of server records into render-safe dicts.

Why:
    The backend returns loosely shaped JSON: fields go missing, arrive as
    null, or come back as nested objects (encrypted e-mail addresses are the
    classic case). Every record passes through exactly one function in this
    module before a panel stores it, so render sites can trust the shape.

Rules:
    - Unknown fields are kept untouched.
    - Display fields fall back to a fixed default when missing, null or empty.
    - A mapping or list where a display string is expected becomes the
      PROTECTED placeholder; the structure is never exposed.
    - Every function is idempotent: normalize(normalize(x)) == normalize(x).
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from datavault.remote.errors import INVALID_FORMAT, ShapeViolation

PROTECTED = "[Encrypted]"
NOT_AVAILABLE = "N/A"
NOT_GRADED = "Not graded"
UNKNOWN_ID = "unknown"
UNNAMED_USER = "Unnamed User"
UNKNOWN_ROLE = "Unknown Role"


def display_text(value: Any, default: str) -> str:
    """Coerce a field to a display string, or return `default`."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        return value if value.strip() else default
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (Mapping, list, tuple, set)):
        return PROTECTED if value else default
    return default


def identifier(value: Any) -> Optional[str]:
    """Return a usable identifier string, or None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, int):
        return str(value)
    return None


def _as_dict(raw: Any) -> Dict[str, Any]:
    return dict(raw) if isinstance(raw, Mapping) else {}


def _email(raw: Mapping[str, Any]) -> str:
    decrypted = raw.get("decryptedEmail")
    if isinstance(decrypted, str) and decrypted.strip():
        return decrypted
    return display_text(raw.get("email"), NOT_AVAILABLE)


def string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    items = [display_text(item, "").strip() for item in value]
    return [item for item in items if item]


def _person_name(raw: Mapping[str, Any], default: str) -> str:
    if isinstance(raw, Mapping):
        return display_text(raw.get("fullName") or raw.get("name"), default)
    return display_text(raw, default)


# ----------------------------------------------------------------- courses


def normalize_course(raw: Any) -> Dict[str, Any]:
    """Normalize a course or grade entry.

    Course lists sometimes contain bare course codes; those become
    `{courseCode: code, courseName: code}`.
    """
    if isinstance(raw, str) or (isinstance(raw, int) and not isinstance(raw, bool)):
        raw = {"courseCode": str(raw), "courseName": str(raw)}
    out = _as_dict(raw)
    code = display_text(out.get("courseCode"), NOT_AVAILABLE)
    out["courseCode"] = code
    out["courseName"] = display_text(out.get("courseName"), code)
    out["grade"] = display_text(out.get("grade"), NOT_GRADED)
    teacher = out.get("teacher")
    if isinstance(teacher, Mapping):
        out["teacher"] = _person_name(teacher, NOT_AVAILABLE)
    else:
        out["teacher"] = display_text(teacher if teacher else out.get("teacherName"), NOT_AVAILABLE)
    return out


def normalize_courses(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [normalize_course(item) for item in raw]


# ----------------------------------------------------------------- users


def normalize_user(raw: Any) -> Dict[str, Any]:
    out = _as_dict(raw)
    out["userId"] = identifier(out.get("userId")) or UNKNOWN_ID
    out["fullName"] = display_text(out.get("fullName"), UNNAMED_USER)
    out["role"] = display_text(out.get("role"), UNKNOWN_ROLE)
    out["email"] = _email(out)
    out["class"] = display_text(out.get("class"), "")
    out["coursesTeaching"] = string_list(out.get("coursesTeaching"))
    out["courses"] = normalize_courses(out.get("courses"))
    for key in ("createdAt", "updatedAt", "lastLogin"):
        out[key] = display_text(out.get(key), NOT_AVAILABLE)
    linked = out.get("linkedStudentData")
    out["linkedStudentData"] = normalize_user(linked) if isinstance(linked, Mapping) else None
    return out


def normalize_users(raw: Any) -> List[Dict[str, Any]]:
    return [normalize_user(item) for item in expect_list(raw)]


def normalize_roster_entry(raw: Any) -> Dict[str, Any]:
    out = _as_dict(raw)
    out["userId"] = identifier(out.get("userId")) or identifier(out.get("id")) or "unknown"
    out["fullName"] = _person_name(out, "Unnamed Student")
    out["email"] = _email(out)
    out["class"] = display_text(out.get("class"), "")
    out["grade"] = display_text(out.get("grade"), NOT_GRADED)
    return out


def normalize_roster(raw: Any) -> List[Dict[str, Any]]:
    return [normalize_roster_entry(item) for item in expect_list(raw)]


# ----------------------------------------------------------------- logs


def normalize_log(raw: Any, index: int = 0) -> Dict[str, Any]:
    out = _as_dict(raw)
    out["id"] = identifier(out.get("_id")) or identifier(out.get("id")) or f"log-{index}"
    out["timestamp"] = display_text(out.get("timestamp"), NOT_AVAILABLE)
    out["userId"] = display_text(out.get("userId"), NOT_AVAILABLE)
    out["role"] = display_text(out.get("role"), NOT_AVAILABLE)
    out["action"] = display_text(out.get("action"), "Unknown Action")
    return out


def normalize_logs(raw: Any) -> List[Dict[str, Any]]:
    return [
        normalize_log(item, index)
        for index, item in enumerate(expect_list(raw, "Invalid logs data format received from server"))
    ]


def _count(value: Any) -> int:
    """Non-negative integer count; anything unusable counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, str):
        value = value.strip()
    if not isinstance(value, (int, float, str)):
        return 0
    try:
        return max(0, int(value))
    except (ValueError, OverflowError):
        return 0


def normalize_verification(raw: Any) -> Dict[str, Any]:
    """Normalize the GET /logs/verify report."""
    out = _as_dict(raw)
    for key in ("totalLogs", "validLogs", "invalidLogs"):
        out[key] = _count(out.get(key))
    results = out.get("results")
    normalized = []
    for index, item in enumerate(results if isinstance(results, (list, tuple)) else []):
        entry = normalize_log(item, index)
        entry["isValid"] = entry.get("isValid") is True
        entry["storedHash"] = display_text(entry.get("storedHash"), NOT_AVAILABLE)
        entry["expectedHash"] = display_text(entry.get("expectedHash"), NOT_AVAILABLE)
        normalized.append(entry)
    out["results"] = normalized
    return out


# ----------------------------------------------------------------- students


def normalize_result_card(raw: Any) -> Dict[str, Any]:
    """Normalize the student's own result card (GET /users/result/result)."""
    out = _as_dict(raw)
    out["studentName"] = display_text(out.get("studentName"), "Unnamed Student")
    out["studentId"] = identifier(out.get("studentId")) or "unknown"
    out["class"] = display_text(out.get("class"), "")
    out["courses"] = normalize_courses(out.get("courses"))
    return out


def normalize_children(raw: Any) -> List[Dict[str, Any]]:
    """The parent endpoint returns one child object or a list of them."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        raw = [raw]
    return [normalize_user(item) for item in expect_list(raw)]


# ----------------------------------------------------------------- shapes


def expect_list(data: Any, message: str = INVALID_FORMAT) -> list:
    if not isinstance(data, list):
        raise ShapeViolation(message)
    return data


def expect_mapping(data: Any, message: str = INVALID_FORMAT) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ShapeViolation(message)
    return data


__all__ = [
    "PROTECTED",
    "NOT_AVAILABLE",
    "NOT_GRADED",
    "UNKNOWN_ID",
    "UNNAMED_USER",
    "UNKNOWN_ROLE",
    "display_text",
    "identifier",
    "string_list",
    "normalize_course",
    "normalize_courses",
    "normalize_user",
    "normalize_users",
    "normalize_roster_entry",
    "normalize_roster",
    "normalize_log",
    "normalize_logs",
    "normalize_verification",
    "normalize_result_card",
    "normalize_children",
    "expect_list",
    "expect_mapping",
]
