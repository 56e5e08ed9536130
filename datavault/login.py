"""
Login screen controller: challenge-gated credential login, QR login and the
rotating backdrop.

The screen never writes the session itself; the resolvers do. The
application shell switches to the dashboard when the session store reports
a new session.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from datavault.identity_access.challenge import ChallengeGate
from datavault.identity_access.domain import Session
from datavault.identity_access.resolvers import CredentialResolver, ProofTokenResolver, ResolutionFailed
from datavault.identity_access.scanner import Scanner, ScanGate
from datavault.notifications import LoggingNotifier, Notifier
from datavault.remote.errors import ChallengeMismatch
from datavault.tasks import PeriodicTask

logger = logging.getLogger("datavault.login")

CREDENTIALS = "credentials"
SCANNER = "scanner"

DEFAULT_BACKDROPS = ("/main.jpg", "/main1.jpg", "/main2.jpg")


class LoginScreen:
    def __init__(
        self,
        *,
        credentials: CredentialResolver,
        proof_token: ProofTokenResolver,
        scanner_factory: Optional[Callable[[], Scanner]] = None,
        notifier: Optional[Notifier] = None,
        gate: Optional[ChallengeGate] = None,
        backdrop_interval: float = 3.0,
        backdrops: Sequence[str] = DEFAULT_BACKDROPS,
    ):
        self._credentials = credentials
        self._proof_token = proof_token
        self._scanner_factory = scanner_factory
        self.notifier = notifier or LoggingNotifier()
        self.gate = gate or ChallengeGate()
        self.backdrops = tuple(backdrops)
        self.backdrop_index = 0
        self._backdrop = PeriodicTask("login.backdrop", backdrop_interval, self.rotate_backdrop)
        self.mode = CREDENTIALS
        self.loading = False
        self.error: Optional[str] = None
        self._scan: Optional[ScanGate] = None
        self._qr_task: Optional[asyncio.Task] = None
        self._mounted = False

    # ------------------------------------------------------------- lifecycle

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def backdrop(self) -> str:
        return self.backdrops[self.backdrop_index] if self.backdrops else ""

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self.mode = CREDENTIALS
        self.error = None
        self.gate.generate()
        if self.backdrops:
            self._backdrop.start()

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self._backdrop.cancel()
        self._close_scanner()
        if self._qr_task is not None:
            self._qr_task.cancel()
            self._qr_task = None
        self.loading = False

    def rotate_backdrop(self) -> None:
        if self.backdrops:
            self.backdrop_index = (self.backdrop_index + 1) % len(self.backdrops)

    # ------------------------------------------------------------- credentials

    async def submit_credentials(self, email: str, password: str, challenge: str) -> Optional[Session]:
        """Verify the challenge, then log in with e-mail and password.

        Returns the new Session, or None with `error` set.
        """
        if not self._mounted or self.loading:
            return None
        try:
            self.gate.verify(challenge)
        except ChallengeMismatch as exc:
            logger.info("login.challenge_failed")
            self.error = exc.message
            self.notifier.notify("error", exc.message)
            self.gate.generate()
            return None

        self.error = None
        self.loading = True
        try:
            session = await self._credentials.resolve(email, password)
        except ResolutionFailed as exc:
            if self._mounted:
                self.error = exc.message
                self.notifier.notify("error", exc.message)
                self.gate.generate()
            return None
        finally:
            self.loading = False
        return session

    def regenerate_challenge(self) -> str:
        return self.gate.generate().text

    # ------------------------------------------------------------- scanner

    def toggle_mode(self) -> str:
        self.error = None
        if self.mode == CREDENTIALS:
            self.mode = SCANNER
            self._open_scanner()
        else:
            self.mode = CREDENTIALS
            self._close_scanner()
        self.gate.generate()
        return self.mode

    def _open_scanner(self) -> None:
        if self._scanner_factory is None:
            self.error = "QR scanning is not available."
            return
        self._scan = ScanGate(self._scanner_factory(), on_accept=self._on_scan, on_error=self._on_scan_error)
        self._scan.start()

    def _close_scanner(self) -> None:
        if self._scan is not None:
            self._scan.teardown()
            self._scan = None

    def _on_scan(self, payload: str) -> None:
        if not self._mounted:
            return
        self._qr_task = asyncio.get_running_loop().create_task(self.submit_proof_token(payload), name="login.qr")

    def _on_scan_error(self, message: str) -> None:
        if self._mounted:
            self.error = message

    async def submit_proof_token(self, payload: str) -> Optional[Session]:
        """Log in with a decoded QR payload; no challenge involved."""
        if not self._mounted:
            return None
        self.error = None
        self.loading = True
        try:
            session = await self._proof_token.resolve(payload)
        except ResolutionFailed as exc:
            if self._mounted:
                self.error = exc.message
                self.notifier.notify("error", exc.message)
            return None
        finally:
            self.loading = False
        self.notifier.notify("success", "QR code scanned successfully!")
        return session


__all__ = ["LoginScreen", "CREDENTIALS", "SCANNER", "DEFAULT_BACKDROPS"]
