"""
Student panel: own result card, course registration and account deletion.

The result card doubles as the student's profile; the courses view needs it
to hide courses the student is already registered for.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from datavault.identity_access.domain import Role
from datavault.panels.base import Fetch, PanelController, Screen
from datavault.records.normalize import expect_mapping, normalize_course, normalize_courses, normalize_result_card
from datavault.tasks import DelayedCall

GRADE_PERCENT = {"A": 100, "B": 80, "C": 60, "D": 40, "F": 20}

UNKNOWN_VIEW_REDIRECT_SECONDS = 2.0


def grade_percent(grade: Optional[str]) -> int:
    return GRADE_PERCENT.get(grade or "", 0)


class StudentPanel(PanelController):
    role = Role.STUDENT.value
    home_view = "dashboard"
    views = frozenset({"dashboard", "courses", "grades", "profile"})
    fetches = {
        "results": Fetch("_load_results", "load grades", empty=lambda: None),
        "available": Fetch("_load_available", "load available courses"),
    }
    view_fetches = {
        "dashboard": ("results",),
        "courses": ("available",),
        "grades": ("results",),
        "profile": ("results",),
    }

    _redirect: Optional[DelayedCall] = None

    def before_activate(self, view: str) -> None:
        if self._redirect is not None:
            self._redirect.cancel()
            self._redirect = None
        if view not in self.views:
            self._redirect = self.schedule(
                "unknown-view-redirect",
                UNKNOWN_VIEW_REDIRECT_SECONDS,
                self._redirect_home,
            )

    def _redirect_home(self) -> None:
        self._redirect = None
        self.router.navigate(self.home_view)

    # ------------------------------------------------------------- loaders

    async def _load_results(self) -> Dict[str, Any]:
        return normalize_result_card(expect_mapping(await self.remote.student_results()))

    async def _load_available(self) -> List[Dict[str, Any]]:
        card = self.results
        if card is None:
            card = await self._load_results()
        registered = {course["courseCode"] for course in card["courses"]}
        offered = normalize_courses(await self.remote.available_courses())
        return [course for course in offered if course["courseCode"] not in registered]

    # ------------------------------------------------------------- reads

    @property
    def results(self) -> Optional[Dict[str, Any]]:
        return self.state.records["results"]

    @property
    def available(self) -> List[Dict[str, Any]]:
        return self.state.records["available"]

    @property
    def selected_courses(self) -> List[Dict[str, Any]]:
        return self.state.selection.courses_to_register

    async def refresh_grades(self) -> None:
        await self.refresh("results")

    async def refresh_available(self) -> None:
        await self.refresh("available")

    # ------------------------------------------------------------- mutations

    def toggle_course(self, course: Mapping[str, Any]) -> bool:
        """Add or remove a course from the registration set; returns membership."""
        entry = normalize_course(course)
        chosen = self.state.selection.courses_to_register
        remaining = [c for c in chosen if c["courseCode"] != entry["courseCode"]]
        selected = len(remaining) == len(chosen)
        self.state.selection.courses_to_register = remaining + [entry] if selected else remaining
        self._emit()
        return selected

    async def register_selected(self) -> bool:
        chosen = list(self.state.selection.courses_to_register)
        if not chosen:
            self.fail("Please select at least one course to register")
            return False
        payload = [{"courseCode": c["courseCode"], "courseName": c["courseName"]} for c in chosen]
        ok, _ = await self._call("register courses", lambda: self.remote.register_courses(payload))
        if not ok:
            return False
        self.log.info("student.courses_registered count=%s", len(chosen))
        self.state.selection.courses_to_register = []
        self.succeed("Courses registered successfully")
        await self.refresh("results")
        await self.refresh("available")
        return True

    async def request_deletion(self) -> bool:
        ok, _ = await self._call("submit deletion request", self.remote.request_deletion)
        if not ok:
            return False
        self.log.info("student.deletion_requested")
        self.succeed("Deletion request submitted successfully. Please check your email for confirmation.")
        return True

    # ------------------------------------------------------------- aggregates

    def summary(self) -> Dict[str, Any]:
        card = self.results
        courses = card["courses"] if card else []
        graded = [course for course in courses if course["grade"] in GRADE_PERCENT]
        return {
            "student_name": card["studentName"] if card else None,
            "class": card["class"] if card else "",
            "total_courses": len(courses),
            "graded_courses": len(graded),
            "progress": [
                {"courseCode": course["courseCode"], "grade": course["grade"], "percent": grade_percent(course["grade"])}
                for course in courses
            ],
        }

    # ------------------------------------------------------------- screens

    def screen_dashboard(self) -> Screen:
        return self._screen("ready", summary=self.summary())

    def screen_courses(self) -> Screen:
        return self._screen("ready", available=self.available, selected=self.selected_courses)

    def screen_grades(self) -> Screen:
        if self.results is None and not self.state.loading:
            return self._screen("no_selection", message="No grade information available")
        return self._screen("ready", results=self.results, summary=self.summary())

    def screen_profile(self) -> Screen:
        if self.results is None and not self.state.loading:
            return self._screen("no_selection", message="No profile data available")
        return self._screen("ready", profile=self.results)

    def screen(self) -> Screen:
        screen = super().screen()
        if screen.kind == "unknown_view":
            screen.message = f"Unknown page: {screen.view}. Redirecting to dashboard..."
        return screen


__all__ = ["StudentPanel", "GRADE_PERCENT", "grade_percent"]
