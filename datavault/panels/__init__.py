from .base import Fetch, LogFilter, PanelController, PanelState, Screen, SelectionState
from .admin import AdminPanel
from .teacher import TeacherPanel
from .student import StudentPanel
from .parent import ParentPanel

__all__ = [
    "Fetch",
    "LogFilter",
    "PanelController",
    "PanelState",
    "Screen",
    "SelectionState",
    "AdminPanel",
    "TeacherPanel",
    "StudentPanel",
    "ParentPanel",
]
