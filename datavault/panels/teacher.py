"""
Teacher panel: taught courses, per-course roster and grade updates.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from datavault.identity_access.domain import Role
from datavault.panels.base import Fetch, PanelController, Screen
from datavault.records.normalize import normalize_courses, normalize_roster

GRADES = ("A", "B", "C", "D", "F")


class TeacherPanel(PanelController):
    role = Role.TEACHER.value
    home_view = "dashboard"
    views = frozenset({"dashboard", "courses", "students", "grades"})
    fetches = {
        "courses": Fetch("_load_courses", "load courses"),
        "roster": Fetch("_load_roster", "load students"),
    }
    view_fetches = {
        "dashboard": ("courses",),
        "courses": ("courses",),
        "students": ("roster",),
        "grades": ("courses",),
    }

    def needs(self, view: str) -> Tuple[str, ...]:
        slots = super().needs(view)
        if "roster" in slots and self.state.selection.course is None:
            return tuple(slot for slot in slots if slot != "roster")
        return slots

    def fetch_params(self, slot: str) -> Dict[str, Any]:
        if slot == "roster":
            return {"course_code": self.state.selection.course}
        return {}

    async def _load_courses(self) -> List[Dict[str, Any]]:
        data = await self.remote.teaching_courses()
        if not isinstance(data, list):
            self.log.warning("teacher.unexpected_shape slot=courses type=%s", type(data).__name__)
            return []
        return normalize_courses(data)

    async def _load_roster(self, course_code: str) -> List[Dict[str, Any]]:
        data = await self.remote.course_students(course_code)
        if not isinstance(data, list):
            self.log.warning("teacher.unexpected_shape slot=roster type=%s", type(data).__name__)
            return []
        return normalize_roster(data)

    @property
    def courses(self) -> List[Dict[str, Any]]:
        return self.state.records["courses"]

    @property
    def roster(self) -> List[Dict[str, Any]]:
        return self.state.records["roster"]

    @property
    def selected_course(self) -> Optional[str]:
        return self.state.selection.course

    async def refresh_courses(self) -> None:
        await self.refresh("courses")

    def select_course(self, course_code: str) -> None:
        """Stash the course, load its roster and switch to the students view."""
        if self.state.selection.course != course_code:
            self.state.records["roster"] = []
        self.state.selection.course = course_code
        self.request("roster")
        self.router.navigate("students")

    async def update_grade(self, student_id: str, grade: str) -> bool:
        course_code = self.state.selection.course
        if course_code is None:
            self.fail("No course selected")
            return False
        if not student_id or not (grade or "").strip():
            self.fail("Please select a grade")
            return False
        grade = grade.strip()
        ok, _ = await self._call(
            "update grade",
            lambda: self.remote.update_grade(student_id=student_id, course_code=course_code, grade=grade),
        )
        if not ok:
            return False
        self.state.records["roster"] = [
            dict(entry, grade=grade) if entry["userId"] == student_id else entry for entry in self.roster
        ]
        self.log.info("teacher.grade_updated course=%s student_id=%s", course_code, student_id)
        self.succeed(f"Grade updated successfully for {student_id}")
        if self.state.selection.course == course_code:
            self.request("roster")
        return True

    def summary(self) -> Dict[str, Any]:
        grades = Counter(entry["grade"] for entry in self.roster)
        return {
            "total_courses": len(self.courses),
            "recent_courses": self.courses[:3],
            "selected_course": self.selected_course,
            "roster_size": len(self.roster),
            "grade_distribution": dict(grades),
        }

    def screen_dashboard(self) -> Screen:
        return self._screen("ready", summary=self.summary())

    def screen_courses(self) -> Screen:
        return self._screen("ready", courses=self.courses)

    def screen_students(self) -> Screen:
        if self.state.selection.course is None:
            return self._screen("no_selection", message="No course selected. Choose a course first.")
        return self._screen("ready", course=self.state.selection.course, students=self.roster, grades=GRADES)

    def screen_grades(self) -> Screen:
        return self._screen("ready", courses=self.courses)


__all__ = ["TeacherPanel", "GRADES"]
