"""
Application shell: switches between the login screen and the role dashboard.

Wiring:
    SessionStore  <- resolvers (login), logout, expiry handler
    Location      <- sidebar, panels (cross-view effects), logout
    RemoteClient  -> on_session_invalid -> expiry handler

Startup restores a stored session; a live session shows the dashboard for its
role, otherwise the login screen. Session changes drive every transition, so
logout, expiry and a successful login all go through `_on_session`.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import httpx

from datavault.config import Settings, load_settings
from datavault.identity_access.domain import Session
from datavault.identity_access.resolvers import CredentialResolver, ProofTokenResolver
from datavault.identity_access.scanner import Scanner
from datavault.identity_access.stores import JsonFileArea, KeyValueArea, MemoryArea, SessionStore
from datavault.login import LoginScreen
from datavault.navigation.roles import PanelVariant, menu_for, panel_for
from datavault.navigation.router import Location, LocationRouter
from datavault.notifications import LoggingNotifier, Notifier
from datavault.panels.base import PanelController, Screen
from datavault.remote.client import RemoteClient

logger = logging.getLogger("datavault.app")

LOGIN_VIEW = "login"
SESSION_EXPIRED = "Session expired. Please log in again."


class Dashboard:
    """The role panel plus its router for one session."""

    def __init__(self, *, session: Session, location: Location, remote: RemoteClient, notifier: Notifier):
        self.session = session
        self.variant: PanelVariant = panel_for(session.role)
        self.menu: List[Tuple[str, str]] = menu_for(session.role)
        self.router: Optional[LocationRouter] = None
        self.panel: Optional[PanelController] = None
        if not self.variant.is_unknown:
            self.router = LocationRouter(location, default_view=self.variant.home_view)
            self.panel = self.variant.panel_cls(remote=remote, session=session, router=self.router, notifier=notifier)

    @property
    def active_view(self) -> Optional[str]:
        return self.router.active_view if self.router else None

    def mount(self) -> None:
        if self.panel is None:
            logger.warning("dashboard.unknown_role role=%s", self.session.role)
            return
        self.router.attach()
        self.panel.mount()
        logger.info("dashboard.mounted variant=%s view=%s", self.variant.name, self.router.active_view)

    def unmount(self) -> None:
        if self.panel is not None:
            self.panel.unmount()
        if self.router is not None:
            self.router.detach()

    def screen(self) -> Screen:
        if self.panel is None:
            return Screen(
                kind="unknown_role",
                view="",
                message=f"Unknown role: {self.session.role}. Please contact an administrator.",
            )
        return self.panel.screen()


class ConsoleApp:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        area: Optional[KeyValueArea] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        scanner_factory: Optional[Callable[[], Scanner]] = None,
        notifier: Optional[Notifier] = None,
        location: Optional[Location] = None,
    ):
        self.settings = settings or load_settings()
        if area is None:
            area = JsonFileArea(self.settings.session_file) if self.settings.session_file else MemoryArea()
        self.notifier = notifier or LoggingNotifier()
        self.store = SessionStore(area)
        self.location = location or Location()
        self.remote = RemoteClient.from_settings(self.settings, token_provider=lambda: self.store.token, transport=transport)
        self.remote.on_session_invalid = self._on_session_invalid
        self.login = LoginScreen(
            credentials=CredentialResolver(remote=self.remote, store=self.store),
            proof_token=ProofTokenResolver(remote=self.remote, store=self.store),
            scanner_factory=scanner_factory,
            notifier=self.notifier,
            backdrop_interval=float(self.settings.backdrop_interval_seconds),
        )
        self.dashboard: Optional[Dashboard] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------- lifecycle

    async def start(self) -> None:
        """Restore any stored session and show the matching screen."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.store.changed.subscribe(self._on_session)
        if self.store.load() is None:
            self._show_login()

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._close_dashboard()
        self.login.unmount()
        await self.remote.aclose()

    async def __aenter__(self) -> "ConsoleApp":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------- actions

    @property
    def session(self) -> Optional[Session]:
        return self.store.current

    @property
    def current_view(self) -> str:
        if self.dashboard is None:
            return LOGIN_VIEW
        return self.dashboard.active_view or ""

    @property
    def panel(self) -> Optional[PanelController]:
        return self.dashboard.panel if self.dashboard else None

    def screen(self) -> Optional[Screen]:
        return self.dashboard.screen() if self.dashboard else None

    def navigate(self, view: str) -> None:
        """Sidebar entry point: point the location at another view."""
        self.location.assign("#" + view)

    def logout(self) -> None:
        self.store.clear(reason="logout")

    # ------------------------------------------------------------- transitions

    def _on_session(self, session: Optional[Session]) -> None:
        if session is None:
            self._close_dashboard()
            self._show_login()
            return
        self.login.unmount()
        self._close_dashboard()
        # Coming from the login screen the dashboard starts on its home view;
        # a restored session keeps the current fragment.
        if self.location.fragment == "#" + LOGIN_VIEW:
            self.location.assign("")
        self.dashboard = Dashboard(session=session, location=self.location, remote=self.remote, notifier=self.notifier)
        self.dashboard.mount()

    def _on_session_invalid(self) -> None:
        if self.store.current is None:
            return
        logger.info("app.session_expired")
        self.store.clear(reason="expired")
        self.notifier.notify("error", SESSION_EXPIRED)

    def _show_login(self) -> None:
        self.location.assign("#" + LOGIN_VIEW)
        self.login.mount()

    def _close_dashboard(self) -> None:
        if self.dashboard is not None:
            self.dashboard.unmount()
            self.dashboard = None


__all__ = ["ConsoleApp", "Dashboard", "LOGIN_VIEW", "SESSION_EXPIRED"]
