"""Progress tracking for library scans.

Provides callback-based progress events for the presentation layer.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """States of a library scan."""

    IDLE = "idle"
    WALKING = "walking"
    EXTRACTING = "extracting"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Check if the scan has ended."""
        return self in (ScanState.DONE, ScanState.ABORTED)


@dataclass
class ScanProgress:
    """Progress event emitted during a scan."""

    state: ScanState
    files_scanned: int
    files_total: int
    current_path: Optional[Path] = None
    elapsed_time: float = 0.0

    @property
    def percentage(self) -> float:
        """Calculate progress percentage."""
        if self.files_total == 0:
            return 0.0
        return (self.files_scanned / self.files_total) * 100.0

    @property
    def is_complete(self) -> bool:
        """Check if every known file has been handled."""
        return self.files_scanned >= self.files_total

    def __str__(self) -> str:
        """String representation of progress."""
        parts = [
            f"[{self.state.value}]",
            f"{self.files_scanned}/{self.files_total}",
            f"({self.percentage:.1f}%)",
        ]
        if self.current_path:
            parts.append(f"- {self.current_path.name}")
        return " ".join(parts)


# Type alias for progress callback function
ProgressCallback = Callable[[ScanProgress], None]


class ProgressTracker:
    """Throttles scan progress and forwards it to a callback."""

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        update_interval: float = 0.1,
    ):
        """Initialize progress tracker.

        Args:
            callback: Function to call with progress updates
            update_interval: Minimum time between updates (seconds)
        """
        self.callback = callback
        self.update_interval = update_interval
        self._last_update_time = 0.0
        self._start_time = 0.0
        self._state = ScanState.IDLE
        self._phase_start_time = 0.0
        self._scanned = 0
        self._total = 0
        self._phase_history: Dict[ScanState, float] = {}

    @property
    def state(self) -> ScanState:
        """Current scan state."""
        return self._state

    def start(self, state: ScanState, total: int, scanned: int = 0) -> None:
        """Enter a new scan state.

        Args:
            state: State being entered
            total: Total number of files known so far
            scanned: Files already handled when the state starts
        """
        self._record_phase()
        self._state = state
        self._phase_start_time = time.monotonic()
        self._scanned = scanned
        self._total = total

        if self._start_time == 0.0:
            self._start_time = self._phase_start_time

        self._notify()

    def update(
        self,
        scanned: Optional[int] = None,
        total: Optional[int] = None,
        current_path: Optional[Path] = None,
    ) -> None:
        """Update progress.

        Args:
            scanned: Files handled so far (if None, increments by 1)
            total: New total, if it changed
            current_path: File just handled
        """
        if scanned is not None:
            self._scanned = scanned
        else:
            self._scanned += 1
        if total is not None:
            self._total = total

        # Throttle updates based on interval
        if time.monotonic() - self._last_update_time < self.update_interval:
            return

        self._notify(current_path)

    def finish(self, state: ScanState) -> None:
        """Enter a terminal state and always notify."""
        self._record_phase()
        self._state = state
        self._notify()

    def _record_phase(self) -> None:
        if self._state is not ScanState.IDLE and self._phase_start_time:
            self._phase_history[self._state] = (
                time.monotonic() - self._phase_start_time
            )

    def _notify(self, current_path: Optional[Path] = None) -> None:
        """Send progress update to callback."""
        if not self.callback:
            return

        now = time.monotonic()
        self._last_update_time = now

        update = ScanProgress(
            state=self._state,
            files_scanned=self._scanned,
            files_total=self._total,
            current_path=current_path,
            elapsed_time=now - self._start_time if self._start_time else 0.0,
        )

        try:
            self.callback(update)
        except Exception as e:
            logger.error("Error in progress callback: %s", e)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of progress tracking.

        Returns:
            Dictionary with tracking summary
        """
        total_time = time.monotonic() - self._start_time if self._start_time else 0
        return {
            "total_time": total_time,
            "phase_history": {
                state.value: duration for state, duration in self._phase_history.items()
            },
            "state": self._state.value,
            "progress": f"{self._scanned}/{self._total}",
        }
