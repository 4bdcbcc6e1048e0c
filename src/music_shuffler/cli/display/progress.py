"""Rich progress bar fed by scanner progress events."""

from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from ...core.scanner import ScanProgress, ScanState

_STATE_LABELS = {
    ScanState.IDLE: "Starting",
    ScanState.WALKING: "Discovering files",
    ScanState.EXTRACTING: "Reading metadata",
    ScanState.FINALIZING: "Saving cache",
    ScanState.DONE: "Done",
    ScanState.ABORTED: "Cancelled",
}


class ScanProgressReporter:
    """Progress callback that renders scan events with ``rich.progress``.

    Use as a context manager around :meth:`LibraryScanner.scan` and pass the
    instance itself as the progress callback.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self.task_id = self.progress.add_task(_STATE_LABELS[ScanState.IDLE], total=None)

    def __enter__(self) -> "ScanProgressReporter":
        self.progress.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.progress.stop()

    def __call__(self, event: ScanProgress) -> None:
        # Unknown total while walking; rich shows a pulsing bar for None
        total = event.files_total if event.state is not ScanState.WALKING else None
        self.progress.update(
            self.task_id,
            description=_STATE_LABELS[event.state],
            total=total,
            completed=event.files_scanned,
        )
