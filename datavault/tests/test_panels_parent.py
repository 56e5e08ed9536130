"""
Parent panel: child records, default selection and course status.
"""
from __future__ import annotations

import pytest

from datavault.panels import ParentPanel
from datavault.panels.parent import course_status

from harness import make_panel

pytestmark = pytest.mark.anyio


@pytest.mark.parametrize(
    "grade, status",
    [("A", "PASSED"), ("D", "PASSED"), ("F", "FAILED"), ("Not graded", "PENDING"), ("", "PENDING"), (None, "PENDING")],
)
def test_course_status(grade, status):
    assert course_status(grade) == status


async def test_single_child_object_is_selected_by_default(vault):
    async with make_panel(ParentPanel, vault.transport()) as h:
        assert h.panel.active_view == "resultcards"
        assert vault.paths() == ["/users/parent/student"]
        assert h.panel.state.selection.child_id == "S1"
        card = h.panel.result_card()

    assert card["fullName"] == "Sara Student"
    assert [(c["courseCode"], c["status"]) for c in card["courses"]] == [
        ("CS101", "PASSED"),
        ("MA201", "FAILED"),
        ("PH101", "PENDING"),
    ]


async def test_list_of_children_and_selection(vault):
    second = {"userId": "S2", "fullName": "Sam Second", "courses": [{"courseCode": "CH101", "grade": "A"}]}
    vault.children = [vault.children, second]
    async with make_panel(ParentPanel, vault.transport()) as h:
        assert [c["userId"] for c in h.panel.children] == ["S1", "S2"]
        h.panel.select_child("S2")
        assert h.panel.result_card()["fullName"] == "Sam Second"

        h.panel.select_child("missing")
        assert h.panel.selected_child()["userId"] == "S1"


async def test_no_child_renders_no_selection(vault):
    vault.children = None
    async with make_panel(ParentPanel, vault.transport()) as h:
        screen = h.panel.screen()
    assert screen.kind == "no_selection"
    assert screen.message == "No child data available"


async def test_failure_reports_action(vault):
    vault.overrides["GET /users/parent/student"] = (404, {"message": "No linked student"})
    async with make_panel(ParentPanel, vault.transport()) as h:
        assert h.panel.children == []
        assert h.panel.state.error == "Failed to load children data: No linked student"
