"""
Cancellable background tasks tied to a component's lifetime.

Intent:
    Replace self-rescheduling "while True: sleep" loops with explicit task
    objects that the owning component starts on mount and cancels on
    teardown. Both helpers are idempotent: starting twice keeps one task,
    cancelling twice is a no-op.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

LOG = logging.getLogger("datavault.tasks")

Callback = Callable[[], Union[None, Awaitable[None]]]


async def _invoke(callback: Callback) -> None:
    result = callback()
    if asyncio.iscoroutine(result):
        await result


class PeriodicTask:
    """Run `callback` every `interval` seconds until cancelled."""

    def __init__(self, name: str, interval: float, callback: Callback):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await _invoke(self._callback)
            except asyncio.CancelledError:
                raise
            except Exception:
                LOG.exception("tasks.periodic_failed name=%s", self.name)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


class DelayedCall:
    """Run `callback` once after `delay` seconds unless cancelled first."""

    def __init__(self, name: str, delay: float, callback: Callback):
        self.name = name
        self.delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.pending:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        await _invoke(self._callback)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


__all__ = ["PeriodicTask", "DelayedCall"]
