"""
Scan lifecycle for a single page view.

Owns the page's ScanState and decides when the page detector runs: once when
the page finishes loading, then again after DOM mutations settle, until a
subscription is found. After a detection the page is never prompted again.

    idle --scan--> scanning --found--> detected --save----> saved
                       |                        --dismiss-> dismissed
                       +--not_found--> idle (eligible for re-scan)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from guardian.config import settings
from guardian.models.subscription import DetectedSubscription, DetectionResult
from guardian.services.page_detector import PageDetector, PageSnapshot
from guardian.utils.debounce import DelayedTask
from guardian.utils.errors import InvalidTransition

logger = logging.getLogger(__name__)

ScanResult = Union[DetectionResult, DetectedSubscription]


class ScanPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DETECTED = "detected"
    SAVED = "saved"
    DISMISSED = "dismissed"


TRANSITIONS = {
    (ScanPhase.IDLE, "scan"): ScanPhase.SCANNING,
    (ScanPhase.SCANNING, "found"): ScanPhase.DETECTED,
    (ScanPhase.SCANNING, "not_found"): ScanPhase.IDLE,
    (ScanPhase.DETECTED, "save"): ScanPhase.SAVED,
    (ScanPhase.DETECTED, "dismiss"): ScanPhase.DISMISSED,
}

TERMINAL_PHASES = frozenset({ScanPhase.SAVED, ScanPhase.DISMISSED})


@dataclass
class ScanState:
    """Mutable scan state of one page view."""
    phase: ScanPhase = ScanPhase.IDLE
    has_scanned: bool = False
    popup_shown: bool = False
    last_result: Optional[ScanResult] = None

    def apply(self, event: str) -> ScanPhase:
        """
        Move to the next phase for `event`.

        Raises:
            InvalidTransition: If the event is not allowed in the current phase
        """
        try:
            self.phase = TRANSITIONS[(self.phase, event)]
        except KeyError:
            raise InvalidTransition(self.phase, event) from None
        return self.phase


class ScanLifecycleController:
    """Sequences page detection for one page view."""

    def __init__(
        self,
        snapshot_source: Callable[[], PageSnapshot],
        present: Optional[Callable[[ScanResult], None]] = None,
        debounce_seconds: Optional[float] = None,
        full_record: bool = False,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        Args:
            snapshot_source: Returns the page's current DOM snapshot
            present: Called once with the detection result (fill-in prompt)
            debounce_seconds: Quiet period before a mutation triggers a re-scan
            full_record: Build a DetectedSubscription instead of a raw hit
            loop: Event loop that runs debounced re-scans; defaults to the
                loop running when a mutation is reported
        """
        self.snapshot_source = snapshot_source
        self.present = present
        self.full_record = full_record
        self.loop = loop
        self.state = ScanState()
        self.observing = False
        self.closed = False

        delay = settings.SCAN_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._rescan = DelayedTask(delay, self._on_mutations_settled)

    @property
    def rescan_pending(self) -> bool:
        return self._rescan.pending

    def page_loaded(self) -> Optional[ScanResult]:
        """Start observing the page and run the first scan."""
        if self.closed:
            return None
        self.observing = True
        return self.scan()

    def notify_mutation(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Record a DOM mutation; the re-scan runs once mutations stop for the window.

        The re-scan is scheduled on `loop`, else the controller's loop, else the
        running loop. Synchronous callers must supply one of the first two.

        Raises:
            RuntimeError: If no event loop is available
        """
        if self.closed or not self.observing:
            return
        self._rescan.schedule(loop or self.loop)

    def _on_mutations_settled(self) -> None:
        logger.debug("Page content changed, re-scanning")
        self.scan()

    def scan(self) -> Optional[ScanResult]:
        """
        Run the detector if the page is idle.

        Detection errors are logged and count as "not found". Every state write
        happens before the presenter is called.
        """
        if self.closed or self.state.phase != ScanPhase.IDLE:
            return self.state.last_result

        self.state.apply("scan")
        try:
            result = self._run_detector()
        except Exception:
            logger.error("Detection failed, treating as not found", exc_info=True)
            result = None

        self.state.has_scanned = True
        if result is None:
            self.state.apply("not_found")
            return None

        self.state.last_result = result
        self.state.popup_shown = True
        self.state.apply("found")
        self._stop_observing()
        self._present(result)
        return result

    def _run_detector(self) -> Optional[ScanResult]:
        detector = PageDetector(self.snapshot_source())
        if self.full_record:
            return detector.detect_subscription()
        return detector.detect()

    def _present(self, result: ScanResult) -> None:
        if self.present is None:
            return
        try:
            self.present(result)
        except Exception:
            logger.error("Presenter failed to show detection", exc_info=True)

    def save(self) -> None:
        """User saved the detected subscription."""
        self._finish("save")

    def dismiss(self) -> None:
        """User dismissed the prompt."""
        self._finish("dismiss")

    def _finish(self, event: str) -> None:
        self.state.apply(event)
        self.state.last_result = None
        self._stop_observing()

    def _stop_observing(self) -> None:
        self.observing = False
        self._rescan.cancel()

    def teardown(self) -> None:
        """Page is navigating away or unloading."""
        self._stop_observing()
        self.closed = True
