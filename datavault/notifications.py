"""
User-facing notifications (the toast channel).

Panels and the application shell report outcomes through a `Notifier`; the
presentation layer decides how to show them. `LoggingNotifier` is the default
and `RecordingNotifier` keeps messages in memory for tests and headless use.
"""
from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

LOG = logging.getLogger("datavault.notifications")

LEVELS = ("info", "success", "error")


class Notifier(Protocol):
    def notify(self, level: str, message: str) -> None:
        ...


class LoggingNotifier:
    def notify(self, level: str, message: str) -> None:
        LOG.log(logging.WARNING if level == "error" else logging.INFO, "notify level=%s message=%s", level, message)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def notify(self, level: str, message: str) -> None:
        self.messages.append((level, message))

    def texts(self, level: str | None = None) -> List[str]:
        return [text for lvl, text in self.messages if level is None or lvl == level]


__all__ = ["LEVELS", "Notifier", "LoggingNotifier", "RecordingNotifier"]
