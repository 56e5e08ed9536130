"""
Role dispatcher: session role -> panel variant and sidebar menu.

Keeps the mapping data-driven so a role can be added without touching the
dashboard. An unknown role maps to UNKNOWN, which renders a terminal state;
visibility alone never grants additional permissions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple, Type

from datavault.identity_access.domain import Role
from datavault.panels.admin import AdminPanel
from datavault.panels.base import PanelController
from datavault.panels.parent import ParentPanel
from datavault.panels.student import StudentPanel
from datavault.panels.teacher import TeacherPanel


@dataclass(frozen=True)
class PanelVariant:
    name: str
    panel_cls: Optional[Type[PanelController]]

    @property
    def home_view(self) -> str:
        return self.panel_cls.home_view if self.panel_cls else "dashboard"

    @property
    def views(self) -> FrozenSet[str]:
        return self.panel_cls.views if self.panel_cls else frozenset()

    @property
    def is_unknown(self) -> bool:
        return self.panel_cls is None


ADMIN = PanelVariant("AdminPanel", AdminPanel)
TEACHER = PanelVariant("TeacherPanel", TeacherPanel)
STUDENT = PanelVariant("StudentPanel", StudentPanel)
PARENT = PanelVariant("ParentPanel", ParentPanel)
UNKNOWN = PanelVariant("Unknown", None)

_VARIANTS: Dict[str, PanelVariant] = {
    Role.ADMIN.value: ADMIN,
    Role.TEACHER.value: TEACHER,
    Role.STUDENT.value: STUDENT,
    Role.PARENT.value: PARENT,
}

# (view id, label) per role, in sidebar order.
MENUS: Dict[str, List[Tuple[str, str]]] = {
    Role.ADMIN.value: [
        ("dashboard", "Dashboard"),
        ("users", "User Management"),
        ("logs", "System Logs"),
        ("intrusion-detection", "Intrusion Detection"),
    ],
    Role.TEACHER.value: [
        ("dashboard", "Dashboard"),
        ("courses", "My Courses"),
        ("students", "Students"),
        ("grades", "Grade Management"),
    ],
    Role.STUDENT.value: [
        ("dashboard", "Dashboard"),
        ("courses", "My Courses"),
        ("grades", "Grades"),
    ],
    Role.PARENT.value: [
        ("resultcards", "Child's Results"),
    ],
}


def panel_for(role: Optional[str]) -> PanelVariant:
    """Pure mapping; roles are matched by their exact wire spelling."""
    return _VARIANTS.get(role or "", UNKNOWN)


def menu_for(role: Optional[str]) -> List[Tuple[str, str]]:
    return list(MENUS.get(role or "", []))


__all__ = ["PanelVariant", "ADMIN", "TEACHER", "STUDENT", "PARENT", "UNKNOWN", "MENUS", "panel_for", "menu_for"]
