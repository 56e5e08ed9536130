"""
Signals deliver synchronously; periodic and delayed tasks stop when cancelled.
"""
from __future__ import annotations

import asyncio
import logging

import pytest

from datavault.signals import Signal
from datavault.tasks import DelayedCall, PeriodicTask


def test_signal_delivers_in_order_and_unsubscribes():
    signal: Signal[int] = Signal("test")
    seen = []
    signal.subscribe(lambda v: seen.append(("a", v)))
    off = signal.subscribe(lambda v: seen.append(("b", v)))
    signal.emit(1)
    off()
    signal.emit(2)
    assert seen == [("a", 1), ("b", 1), ("a", 2)]
    assert len(signal) == 1


def test_failing_handler_does_not_stop_delivery(caplog):
    signal: Signal[str] = Signal("test")
    seen = []

    def broken(_value):
        raise RuntimeError("boom")

    signal.subscribe(broken)
    signal.subscribe(seen.append)
    with caplog.at_level(logging.ERROR, logger="datavault.signals"):
        signal.emit("x")
    assert seen == ["x"]
    assert "signal.handler_failed" in caplog.text


@pytest.mark.anyio
async def test_periodic_task_runs_until_cancelled():
    ticks = []
    task = PeriodicTask("tick", 0.01, lambda: ticks.append(1))
    task.start()
    task.start()
    await asyncio.sleep(0.055)
    task.cancel()
    count = len(ticks)
    assert count >= 2
    assert not task.running
    await asyncio.sleep(0.03)
    assert len(ticks) == count


@pytest.mark.anyio
async def test_periodic_task_survives_callback_errors():
    calls = []

    def flaky():
        calls.append(1)
        raise ValueError("nope")

    task = PeriodicTask("flaky", 0.01, flaky)
    task.start()
    await asyncio.sleep(0.045)
    task.cancel()
    assert len(calls) >= 2


def test_periodic_task_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        PeriodicTask("bad", 0, lambda: None)


@pytest.mark.anyio
async def test_delayed_call_fires_once():
    fired = []

    async def later():
        fired.append(1)

    call = DelayedCall("later", 0.01, later)
    call.start()
    assert call.pending
    await asyncio.sleep(0.03)
    assert fired == [1]
    assert not call.pending


@pytest.mark.anyio
async def test_delayed_call_cancel_prevents_callback():
    fired = []
    call = DelayedCall("later", 0.01, lambda: fired.append(1))
    call.start()
    call.cancel()
    call.cancel()
    await asyncio.sleep(0.03)
    assert fired == []
