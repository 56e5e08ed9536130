"""
Human-verification challenge shown on the credential login form.

Security:
    This is a usability gate, not a security control. The text is generated
    and compared inside the same process that has to pass it, so it only slows
    down casual automation. The comparison lives behind `ChallengeVerifier`
    so a server-side check can replace `LocalVerifier` without changing how
    the login screen calls `generate()` and `verify()`.
"""
from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from typing import Protocol

from datavault.remote.errors import ChallengeMismatch

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
CHALLENGE_LENGTH = 6


class ChallengeVerifier(Protocol):
    def matches(self, *, text: str, submitted: str) -> bool:
        ...


class LocalVerifier:
    def matches(self, *, text: str, submitted: str) -> bool:
        # Exact and case-sensitive; no trimming.
        return submitted == text


@dataclass
class Challenge:
    text: str = ""
    submitted_text: str = ""
    failed: bool = False


def random_text(length: int = CHALLENGE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class ChallengeGate:
    def __init__(self, verifier: ChallengeVerifier | None = None):
        self._verifier = verifier or LocalVerifier()
        self.challenge = Challenge()

    @property
    def text(self) -> str:
        return self.challenge.text

    @property
    def failed(self) -> bool:
        return self.challenge.failed

    def generate(self) -> Challenge:
        """Issue a new text and reset submission and failure flag."""
        self.challenge = Challenge(text=random_text())
        return self.challenge

    def submit(self, text: str) -> None:
        self.challenge.submitted_text = text

    def verify(self, submitted: str | None = None) -> None:
        """Check the submission against the current text.

        Raises ChallengeMismatch (a recoverable validation error) and sets
        `failed` when the texts differ. Never performs network I/O.
        """
        if submitted is not None:
            self.challenge.submitted_text = submitted
        if not self.challenge.text or not self._verifier.matches(
            text=self.challenge.text, submitted=self.challenge.submitted_text
        ):
            self.challenge.failed = True
            raise ChallengeMismatch()
        self.challenge.failed = False


__all__ = ["ALPHABET", "CHALLENGE_LENGTH", "Challenge", "ChallengeGate", "ChallengeVerifier", "LocalVerifier", "random_text"]
