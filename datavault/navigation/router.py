"""
Location indicator and the router that derives the active view from it.

`Location` is the external, mutable fragment (the `#users` part of a URL).
Anything may assign it: a sidebar click, a panel's cross-view effect, or the
application shell after logout. `LocationRouter` subscribes for its lifetime
and republishes the derived view id synchronously.

Delivery is serial: a change notification runs to completion (including all
router subscribers) before the next assignment is processed, so no locking is
needed. Fetches started by a view are not awaited here.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from datavault.signals import Signal

LOG = logging.getLogger("datavault.navigation")

FRAGMENT_MARKER = "#"


def view_from_fragment(fragment: Optional[str], default: str) -> str:
    """Strip the leading marker; an empty fragment means the default view."""
    value = (fragment or "").strip()
    if value.startswith(FRAGMENT_MARKER):
        value = value[len(FRAGMENT_MARKER):]
    return value or default


class Location:
    def __init__(self, fragment: str = ""):
        self._fragment = fragment
        self.changed: Signal[str] = Signal("location.changed")

    @property
    def fragment(self) -> str:
        return self._fragment

    def assign(self, fragment: str) -> None:
        """Set the fragment; listeners run only when the value changes."""
        if fragment and not fragment.startswith(FRAGMENT_MARKER):
            fragment = FRAGMENT_MARKER + fragment
        if fragment == self._fragment:
            return
        self._fragment = fragment
        self.changed.emit(fragment)


class LocationRouter:
    """Tracks `active_view` for one dashboard lifetime."""

    def __init__(self, location: Location, *, default_view: str):
        self.location = location
        self.default_view = default_view
        self.active_view = view_from_fragment(location.fragment, default_view)
        self.view_changed: Signal[str] = Signal("router.view_changed")
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.location.changed.subscribe(self._on_location)
            self._recompute(self.location.fragment)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def navigate(self, view: str) -> None:
        """Cross-view effect: reprogram the location to another view."""
        self.location.assign(FRAGMENT_MARKER + view)

    def _on_location(self, fragment: str) -> None:
        self._recompute(fragment)

    def _recompute(self, fragment: str) -> None:
        view = view_from_fragment(fragment, self.default_view)
        if view == self.active_view:
            return
        previous, self.active_view = self.active_view, view
        LOG.debug("navigation.view_changed from=%s to=%s", previous, view)
        self.view_changed.emit(view)


__all__ = ["FRAGMENT_MARKER", "Location", "LocationRouter", "view_from_fragment"]
