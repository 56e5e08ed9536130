"""
Boundary to the external QR scanner widget.

The camera and decoding live outside this package. `ScanGate` owns one scanner
for one mount: it accepts at most one decoded payload, stops the scanner on
the first acceptance and again on teardown, and turns scanner errors into
messages the login screen can show. Per-frame decoding noise is dropped.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger("datavault.identity_access.scanner")

BENIGN_ERROR_MARKERS = ("getImageData", "IndexSizeError", "QR code parse error")

CAMERA_ERROR = "Could not access camera. Please ensure you have granted permission."
SCAN_ERROR = "QR scan error. Please try again."


class Scanner(Protocol):
    def start(self, on_decode: Callable[[str], None], on_error: Callable[[str], None]) -> None:
        ...

    def stop(self) -> None:
        ...


def is_benign(error: str) -> bool:
    return any(marker in (error or "") for marker in BENIGN_ERROR_MARKERS)


def error_message(error: str) -> str:
    # Scanner start-up failures ("Failed to initialize scanner", "Failed to
    # access camera") all mean the camera is unavailable.
    return CAMERA_ERROR if "Failed" in (error or "") else SCAN_ERROR


class ScanGate:
    def __init__(
        self,
        scanner: Scanner,
        *,
        on_accept: Callable[[str], None],
        on_error: Callable[[str], None],
    ):
        self._scanner = scanner
        self._on_accept = on_accept
        self._on_error = on_error
        self._started = False
        self._accepted = False
        self._closed = False

    @property
    def accepted(self) -> bool:
        return self._accepted

    @property
    def active(self) -> bool:
        return self._started and not self._closed and not self._accepted

    def start(self) -> None:
        if self._started or self._closed:
            return
        self._started = True
        try:
            self._scanner.start(self._handle_decode, self._handle_error)
        except Exception as exc:
            logger.warning("scanner.start_failed error=%s", type(exc).__name__)
            self._on_error(CAMERA_ERROR)

    def teardown(self) -> None:
        """Stop the scanner whatever happened before; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self._started:
            self._stop()

    def _handle_decode(self, payload: str) -> None:
        if self._accepted or self._closed:
            logger.debug("scanner.decode_ignored")
            return
        self._accepted = True
        self._stop()
        logger.info("scanner.decode_accepted")
        self._on_accept(payload)

    def _handle_error(self, error: str) -> None:
        if self._closed or is_benign(error):
            return
        logger.info("scanner.error")
        self._on_error(error_message(error))

    def _stop(self) -> None:
        try:
            self._scanner.stop()
        except Exception:
            logger.exception("scanner.stop_failed")


__all__ = [
    "BENIGN_ERROR_MARKERS",
    "CAMERA_ERROR",
    "SCAN_ERROR",
    "Scanner",
    "ScanGate",
    "error_message",
    "is_benign",
]
