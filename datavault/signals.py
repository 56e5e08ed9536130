"""
Synchronous in-process signal with subscribe/unsubscribe.

Used for location changes, active-view changes and panel state changes. All
delivery happens on the caller's thread, in subscription order, before
`emit` returns.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, TypeVar

logger = logging.getLogger("datavault.signals")

T = TypeVar("T")


class Signal(Generic[T]):
    def __init__(self, name: str):
        self.name = name
        self._next_id = 0
        self._handlers: Dict[int, Callable[[T], None]] = {}

    def subscribe(self, handler: Callable[[T], None]) -> Callable[[], None]:
        """Register a handler and return a callable that removes it again."""
        self._next_id += 1
        sub_id = self._next_id
        self._handlers[sub_id] = handler

        def _unsubscribe() -> None:
            self._handlers.pop(sub_id, None)

        return _unsubscribe

    def emit(self, value: T) -> None:
        for handler in list(self._handlers.values()):
            try:
                handler(value)
            except Exception:
                logger.exception("signal.handler_failed signal=%s", self.name)

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["Signal"]
