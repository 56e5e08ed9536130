"""
Panel data controller: the shared fetch/filter/mutate/refresh pattern.

Intent:
    One controller instance backs one role panel for one dashboard lifetime.
    It reacts to the router's active view, issues the fetches that view needs,
    normalizes responses into `state.records`, and exposes mutations that
    refresh (or patch) the held records afterwards.

Design:
    - Data is organised in named slots ("users", "logs", "roster", ...). Each
      slot is declared once in `fetches` with its loader and failure wording; each view
      lists the slots it needs in `view_fetches`.
    - Every fetch gets a per-slot sequence number. A result is applied only if
      it belongs to the latest request for its slot and the panel is still
      mounted; superseded tasks are also cancelled.
    - Activating a view cancels in-flight fetches the new view does not need
      and skips slots whose identical request is already in flight.
    - Every path ends in updated records or a captured error message; remote
      failures never escape a fetch task.

Permissions:
    A panel reads the Session but never mutates it. Only the panel itself
    mutates its own state and selection.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple

from datavault.identity_access.domain import Session
from datavault.navigation.router import LocationRouter
from datavault.notifications import LoggingNotifier, Notifier
from datavault.remote.client import RemoteClient
from datavault.remote.errors import INVALID_FORMAT, RemoteError, SessionInvalid, ShapeViolation, describe
from datavault.signals import Signal
from datavault.tasks import DelayedCall

# ----------------------------------------------------------------- state


@dataclass
class LogFilter:
    """Audit log filter; every field is free-form text."""

    subject_id: str = ""
    role: str = ""
    action: str = ""
    from_: str = ""
    to: str = ""

    WIRE_NAMES: ClassVar[Mapping[str, str]] = {
        "subject_id": "userId",
        "role": "role",
        "action": "action",
        "from_": "from",
        "to": "to",
    }

    def to_query(self) -> Dict[str, str]:
        """Compose the outgoing query; empty fields are omitted, others sent verbatim."""
        query: Dict[str, str] = {}
        for attr, wire in self.WIRE_NAMES.items():
            value = getattr(self, attr) or ""
            if value.strip():
                query[wire] = value
        return query


@dataclass
class SelectionState:
    user: Optional[Dict[str, Any]] = None
    editing_user: Optional[Dict[str, Any]] = None
    course: Optional[str] = None
    courses_to_register: List[Dict[str, Any]] = field(default_factory=list)
    child_id: Optional[str] = None

    def clear(self) -> None:
        self.user = None
        self.editing_user = None
        self.course = None
        self.courses_to_register = []
        self.child_id = None


@dataclass
class PanelState:
    records: Dict[str, Any] = field(default_factory=dict)
    loading: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None
    filter: LogFilter = field(default_factory=LogFilter)
    selection: SelectionState = field(default_factory=SelectionState)


@dataclass
class Screen:
    """What the presentation layer should show for the active view.

    kind: ready | unknown_view | no_selection | unknown_role
    """

    kind: str
    view: str
    message: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Fetch:
    """One data slot: the loader method name and the failure wording.

    A failed fetch reports "Failed to <action>: <detail>".
    """

    loader: str
    action: str
    empty: Callable[[], Any] = list


@dataclass
class _Inflight:
    seq: int
    key: Tuple[Tuple[str, Any], ...]
    task: asyncio.Task


def _params_key(params: Mapping[str, Any]) -> Tuple[Tuple[str, Any], ...]:
    return tuple(sorted((k, tuple(v) if isinstance(v, list) else v) for k, v in params.items()))


# ----------------------------------------------------------------- controller


class PanelController:
    role: ClassVar[str] = ""
    home_view: ClassVar[str] = "dashboard"
    views: ClassVar[FrozenSet[str]] = frozenset()
    fetches: ClassVar[Mapping[str, Fetch]] = {}
    view_fetches: ClassVar[Mapping[str, Tuple[str, ...]]] = {}

    def __init__(
        self,
        *,
        remote: RemoteClient,
        session: Session,
        router: LocationRouter,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.remote = remote
        self.session = session
        self.router = router
        self.notifier = notifier or LoggingNotifier()
        self.state = PanelState(records={slot: fetch.empty() for slot, fetch in self.fetches.items()})
        self.changed: Signal[PanelState] = Signal(f"panel.{self.role or 'unknown'}.changed")
        self.log = logging.getLogger(f"datavault.panels.{(self.role or 'base').lower()}")
        self._seq: Dict[str, int] = {}
        self._inflight: Dict[str, _Inflight] = {}
        self._busy = 0
        self._timers: List[DelayedCall] = []
        self._mounted = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------- lifecycle

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def active_view(self) -> str:
        return self.router.active_view

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._unsubscribe = self.router.view_changed.subscribe(self._on_view)
        self.log.debug("panel.mounted role=%s view=%s", self.role, self.active_view)
        self._activate(self.active_view)

    def unmount(self) -> None:
        """Stop every pending effect; later completions are ignored."""
        if not self._mounted:
            return
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for inflight in self._inflight.values():
            inflight.task.cancel()
        self._inflight.clear()
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self.state.selection.clear()
        self.state.loading = False
        self.log.debug("panel.unmounted role=%s", self.role)

    def _on_view(self, view: str) -> None:
        if self._mounted:
            self._activate(view)

    def _activate(self, view: str) -> None:
        needed = self.needs(view) if view in self.views else ()
        for slot in list(self._inflight):
            if slot not in needed:
                self._cancel(slot)
        self.before_activate(view)
        for slot in needed:
            self.request(slot, force=False)
        self._sync_loading()
        self._emit()

    def before_activate(self, view: str) -> None:
        """Hook run on every activation before the view's fetches start."""

    def needs(self, view: str) -> Tuple[str, ...]:
        return tuple(self.view_fetches.get(view, ()))

    def on_loaded(self, slot: str) -> None:
        """Hook run after a fetch result was applied to `slot`."""

    # ------------------------------------------------------------- fetching

    def fetch_params(self, slot: str) -> Dict[str, Any]:
        """Parameters captured when a fetch for `slot` is issued."""
        return {}

    def request(self, slot: str, *, force: bool = True) -> Optional[asyncio.Task]:
        """Issue the fetch for `slot`.

        With force=False an in-flight request with identical parameters is
        reused instead of starting a second one.
        """
        if not self._mounted:
            return None
        params = self.fetch_params(slot)
        key = _params_key(params)
        current = self._inflight.get(slot)
        if current is not None and not force and current.key == key and not current.task.done():
            return current.task
        if current is not None:
            current.task.cancel()
        seq = self._seq.get(slot, 0) + 1
        self._seq[slot] = seq
        task = asyncio.get_running_loop().create_task(self._run(slot, seq, params), name=f"{self.role}:{slot}:{seq}")
        self._inflight[slot] = _Inflight(seq=seq, key=key, task=task)
        self.state.error = None
        self._sync_loading()
        self._emit()
        return task

    def in_flight(self, slot: str) -> Optional[asyncio.Task]:
        current = self._inflight.get(slot)
        return current.task if current else None

    async def refresh(self, slot: str) -> None:
        """Force a new fetch for `slot` and wait until it finished."""
        task = self.request(slot)
        if task is not None:
            await asyncio.wait([task])

    async def settle(self) -> None:
        """Wait until no fetch is in flight (including follow-up fetches)."""
        while self._inflight:
            tasks = [inflight.task for inflight in self._inflight.values()]
            await asyncio.gather(*tasks, return_exceptions=True)

    def _is_current(self, slot: str, seq: int) -> bool:
        current = self._inflight.get(slot)
        return self._mounted and current is not None and current.seq == seq

    def _cancel(self, slot: str) -> None:
        current = self._inflight.pop(slot, None)
        if current is not None:
            current.task.cancel()
            self.log.debug("panel.fetch_cancelled slot=%s seq=%s", slot, current.seq)

    async def _run(self, slot: str, seq: int, params: Dict[str, Any]) -> None:
        fetch = self.fetches[slot]
        loader: Callable[..., Awaitable[Any]] = getattr(self, fetch.loader)
        try:
            value = await loader(**params)
        except SessionInvalid as exc:
            if self._is_current(slot, seq):
                self.state.records[slot] = fetch.empty()
                self.state.error = exc.message
        except RemoteError as exc:
            if self._is_current(slot, seq):
                self.state.records[slot] = fetch.empty()
                if isinstance(exc, ShapeViolation):
                    self.state.error = exc.message
                else:
                    self.state.error = f"Failed to {fetch.action}: {describe(exc)}"
                self.log.warning("panel.fetch_failed slot=%s code=%s", slot, exc.code)
        except Exception:
            # Records that break normalization count as malformed payloads.
            if self._is_current(slot, seq):
                self.state.records[slot] = fetch.empty()
                self.state.error = INVALID_FORMAT
            self.log.exception("panel.fetch_malformed slot=%s", slot)
        else:
            if self._is_current(slot, seq):
                self.state.records[slot] = value
                self.on_loaded(slot)
                self.log.debug("panel.fetch_applied slot=%s seq=%s", slot, seq)
            else:
                self.log.debug("panel.fetch_discarded slot=%s seq=%s", slot, seq)
        finally:
            if self._is_current(slot, seq):
                self._inflight.pop(slot, None)
                self._sync_loading()
                self._emit()

    # ------------------------------------------------------------- mutations

    async def _call(self, action: str, factory: Callable[[], Awaitable[Any]]) -> Tuple[bool, Any]:
        """Run one remote mutation and capture any failure as `state.error`.

        Returns (ok, result). After the await nothing is applied when the
        panel was unmounted in the meantime.
        """
        if not self._mounted:
            return False, None
        self._busy += 1
        self._sync_loading()
        self._emit()
        try:
            result = await factory()
        except RemoteError as exc:
            if self._mounted:
                self.state.error = exc.message if isinstance(exc, SessionInvalid) else f"Failed to {action}: {describe(exc)}"
                self.log.warning("panel.mutation_failed action=%s code=%s", action.replace(" ", "_"), exc.code)
            return False, None
        finally:
            self._busy -= 1
            if self._mounted:
                self._sync_loading()
                self._emit()
        if not self._mounted:
            return False, None
        self.state.error = None
        return True, result

    def fail(self, message: str) -> None:
        """Record a local validation error; no network call is made."""
        self.state.error = message
        self._emit()

    def succeed(self, message: str) -> None:
        self.state.notice = message
        self.notifier.notify("success", message)
        self._emit()

    def dismiss(self) -> None:
        self.state.error = None
        self.state.notice = None
        self._emit()

    def schedule(self, name: str, delay: float, callback: Callable[[], Any]) -> DelayedCall:
        """Start a delayed callback that is cancelled on unmount."""
        self._timers = [timer for timer in self._timers if timer.pending]
        timer = DelayedCall(f"{self.role}:{name}", delay, callback)
        self._timers.append(timer)
        timer.start()
        return timer

    # ------------------------------------------------------------- screens

    def screen(self) -> Screen:
        view = self.active_view
        if view not in self.views:
            return self._screen(
                "unknown_view",
                view,
                message=f"Unknown view '{view}'. Choose an entry from the menu.",
            )
        render = getattr(self, "screen_" + view.replace("-", "_"))
        return render()

    def _screen(self, kind: str, view: Optional[str] = None, *, message: Optional[str] = None, **data: Any) -> Screen:
        return Screen(
            kind=kind,
            view=view or self.active_view,
            message=message,
            loading=self.state.loading,
            error=self.state.error,
            notice=self.state.notice,
            data=data,
        )

    # ------------------------------------------------------------- internals

    def _sync_loading(self) -> None:
        self.state.loading = bool(self._inflight) or self._busy > 0

    def _emit(self) -> None:
        if self._mounted:
            self.changed.emit(self.state)


__all__ = ["LogFilter", "SelectionState", "PanelState", "Screen", "Fetch", "PanelController"]
