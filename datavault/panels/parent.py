"""
Parent panel: result cards of the linked children.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from datavault.identity_access.domain import Role
from datavault.panels.base import Fetch, PanelController, Screen
from datavault.records.normalize import NOT_GRADED, normalize_children


def course_status(grade: Optional[str]) -> str:
    if grade == "F":
        return "FAILED"
    if not grade or grade == NOT_GRADED:
        return "PENDING"
    return "PASSED"


class ParentPanel(PanelController):
    role = Role.PARENT.value
    home_view = "resultcards"
    views = frozenset({"resultcards"})
    fetches = {
        "children": Fetch("_load_children", "load children data"),
    }
    view_fetches = {
        "resultcards": ("children",),
    }

    async def _load_children(self) -> List[Dict[str, Any]]:
        return normalize_children(await self.remote.child_records())

    @property
    def children(self) -> List[Dict[str, Any]]:
        return self.state.records["children"]

    def on_loaded(self, slot: str) -> None:
        if slot == "children" and self.state.selection.child_id is None and self.children:
            self.state.selection.child_id = self.children[0]["userId"]

    def select_child(self, child_id: str) -> None:
        self.state.selection.child_id = child_id
        self._emit()

    def selected_child(self) -> Optional[Dict[str, Any]]:
        """The selected child, falling back to the first one."""
        for child in self.children:
            if child["userId"] == self.state.selection.child_id:
                return child
        return self.children[0] if self.children else None

    def result_card(self) -> Optional[Dict[str, Any]]:
        child = self.selected_child()
        if child is None:
            return None
        courses = [dict(course, status=course_status(course["grade"])) for course in child["courses"]]
        return {
            "userId": child["userId"],
            "fullName": child["fullName"],
            "class": child["class"],
            "email": child["email"],
            "courses": courses,
        }

    def screen_resultcards(self) -> Screen:
        card = self.result_card()
        if card is None:
            return self._screen("no_selection", message="No child data available")
        return self._screen("ready", children=self.children, card=card)


__all__ = ["ParentPanel", "course_status"]
