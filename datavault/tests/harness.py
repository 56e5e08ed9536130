"""Wire one panel against a transport the way the dashboard does."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Type

import httpx

from datavault.identity_access.domain import Session
from datavault.navigation.router import Location, LocationRouter
from datavault.notifications import RecordingNotifier
from datavault.panels.base import PanelController
from datavault.remote.client import RemoteClient

TOKENS = {
    "Admin": ("admin-token", "A1"),
    "Teacher": ("teacher-token", "T1"),
    "Student": ("student-token", "S1"),
    "Parent": ("parent-token", "P1"),
}


@dataclass
class PanelHarness:
    panel: PanelController
    location: Location
    router: LocationRouter
    remote: RemoteClient
    notifier: RecordingNotifier

    async def __aenter__(self) -> "PanelHarness":
        self.router.attach()
        self.panel.mount()
        await self.panel.settle()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.panel.unmount()
        self.router.detach()
        await self.remote.aclose()

    async def go(self, view: str) -> None:
        self.location.assign("#" + view)
        await self.panel.settle()


def make_panel(
    panel_cls: Type[PanelController],
    transport: httpx.AsyncBaseTransport,
    *,
    fragment: str = "",
    token: Optional[str] = None,
) -> PanelHarness:
    default_token, subject = TOKENS[panel_cls.role]
    session = Session(token=token or default_token, role=panel_cls.role, subject_id=subject)
    remote = RemoteClient(base_url="http://test/api", token_provider=lambda: session.token, transport=transport)
    location = Location(fragment)
    router = LocationRouter(location, default_view=panel_cls.home_view)
    notifier = RecordingNotifier()
    panel = panel_cls(remote=remote, session=session, router=router, notifier=notifier)
    return PanelHarness(panel=panel, location=location, router=router, remote=remote, notifier=notifier)
