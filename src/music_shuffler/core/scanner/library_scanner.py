"""Library scanner.

Walks a library root, serves unchanged files from the metadata cache and
extracts metadata for new or modified files on worker threads. The thread
calling :meth:`LibraryScanner.scan` is the only one that touches the cache
and the diagnostics list; workers just return their results.

Scan states: idle -> walking -> extracting -> finalizing -> done, or aborted
from walking/extracting when cancelled.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ...config import MAX_WORKER_CAP
from ...exceptions import (
    CachePersistFailure,
    CorruptMetadata,
    MediaError,
    UnreadableMedia,
)
from ...models import (
    CatalogEntry,
    Diagnostic,
    Fingerprint,
    LibraryCatalog,
    TrackFile,
    TrackMetadata,
)
from ..cache import CacheStore, LibraryCache
from ..filesystem import PathWalker, WalkWarning, check_root
from ..metadata import MetadataReader
from .progress import ProgressCallback, ProgressTracker, ScanState

logger = logging.getLogger(__name__)

# Result of one worker unit: metadata or the error that prevented it
Outcome = Union[TrackMetadata, MediaError]


@dataclass
class ScanResult:
    """Outcome of one library scan."""

    root: Path
    state: ScanState
    catalog: LibraryCatalog
    diagnostics: List[Diagnostic] = dataclass_field(default_factory=list)
    walk_warnings: List[WalkWarning] = dataclass_field(default_factory=list)
    files_found: int = 0
    cache_hits: int = 0
    extracted: int = 0
    pruned: int = 0
    duration_seconds: float = 0.0
    cache_saved: bool = False
    cache_error: Optional[str] = None
    cold_start_reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        """Whether the scan was aborted by cancellation."""
        return self.state is ScanState.ABORTED

    @property
    def skipped(self) -> int:
        """Number of files excluded from the catalog because of errors."""
        return len(self.diagnostics)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format.

        Returns:
            Dictionary with statistics and limited diagnostics list
        """
        return {
            "root": str(self.root),
            "state": self.state.value,
            "tracks": len(self.catalog),
            "files_found": self.files_found,
            "cache_hits": self.cache_hits,
            "extracted": self.extracted,
            "skipped": self.skipped,
            "pruned": self.pruned,
            "duration_seconds": self.duration_seconds,
            "cache_saved": self.cache_saved,
            "cache_error": self.cache_error,
            "diagnostics": [d.to_dict() for d in self.diagnostics[:10]],
        }


class LibraryScanner:
    """Builds a :class:`LibraryCatalog` for a library root.

    A scanner can run many scans one after another, but only one at a time.
    """

    def __init__(
        self,
        cache_store: CacheStore,
        reader: Optional[MetadataReader] = None,
        walker: Optional[PathWalker] = None,
        max_workers: int = MAX_WORKER_CAP,
        file_timeout: Optional[float] = 30.0,
        save_interval: int = 0,
        poll_interval: float = 0.1,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Initialize library scanner.

        Args:
            cache_store: Store used to load and save the metadata cache
            reader: Metadata reader run on cache misses
            walker: Path walker used to discover candidate files
            max_workers: Upper bound on extraction threads
            file_timeout: Seconds after which a single extraction is given
                up as unreadable (None disables the deadline)
            save_interval: Save the cache every N extractions (0 = at the end)
            poll_interval: Seconds between cancellation/deadline checks
            cancel_event: External cancellation signal
        """
        self.cache_store = cache_store
        self.reader = reader or MetadataReader()
        self.walker = walker or PathWalker()
        self.max_workers = max(1, max_workers)
        self.file_timeout = file_timeout
        self.save_interval = save_interval
        self.poll_interval = poll_interval
        self._cancel_event = cancel_event or threading.Event()
        self._state = ScanState.IDLE
        self._scan_lock = threading.Lock()
        self._thread_count = 0

    @property
    def state(self) -> ScanState:
        """State of the current or last scan."""
        return self._state

    @property
    def cancel_event(self) -> threading.Event:
        """Event that cancels the running scan when set."""
        return self._cancel_event

    def cancel(self) -> None:
        """Request cancellation; honoured between files."""
        logger.info("Scan cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancel_event.is_set()

    def scan(
        self, root: Path, progress_callback: Optional[ProgressCallback] = None
    ) -> ScanResult:
        """Scan a library root and return its catalog.

        Args:
            root: Library root directory
            progress_callback: Receives throttled progress events

        Returns:
            ScanResult with catalog, diagnostics and statistics

        Raises:
            RootInaccessible: If the root cannot be listed
            RuntimeError: If another scan is already running on this scanner
        """
        if not self._scan_lock.acquire(blocking=False):
            raise RuntimeError("A scan is already running")
        try:
            return self._scan(Path(root), ProgressTracker(progress_callback))
        finally:
            self._scan_lock.release()

    def _scan(self, root: Path, tracker: ProgressTracker) -> ScanResult:
        start_time = time.monotonic()
        self._cancel_event.clear()
        self._state = ScanState.IDLE

        root = check_root(root)
        logger.info("Scanning library: %s", root)
        cache = self.cache_store.load(root)
        result = ScanResult(
            root=root,
            state=ScanState.IDLE,
            catalog=LibraryCatalog(root=root),
            cold_start_reason=cache.cold_start_reason,
        )

        # Walking: discover candidates and split into cache hits and misses
        self._enter(ScanState.WALKING, tracker, total=0)
        candidates, resolved, stale = self._walk(root, cache, result, tracker)
        result.files_found = len(candidates)
        result.cache_hits = len(resolved)

        # Extracting: run the reader on misses
        if not self.cancelled:
            self._enter(
                ScanState.EXTRACTING,
                tracker,
                total=len(candidates),
                scanned=len(resolved),
            )
            self._extract(stale, cache, resolved, result, tracker)

        if self.cancelled:
            self._state = ScanState.ABORTED
            logger.warning(
                "Scan of %s cancelled after %d of %d files",
                root,
                len(resolved) + len(result.diagnostics),
                len(candidates),
            )
        else:
            # Finalizing: forget deleted files, then persist
            self._enter(
                ScanState.FINALIZING,
                tracker,
                total=len(candidates),
                scanned=len(candidates),
            )
            result.pruned = cache.prune(track.path for track in candidates)

        # Saved even when aborted so finished extractions are not lost
        self._persist(root, cache, result)

        for track in candidates:
            metadata = resolved.get(track.path)
            if metadata is not None:
                result.catalog.add(CatalogEntry(track=track, metadata=metadata))

        if self._state is not ScanState.ABORTED:
            self._state = ScanState.DONE
        result.state = self._state
        result.duration_seconds = time.monotonic() - start_time
        tracker.finish(self._state)
        self._log_summary(result)
        return result

    def _enter(
        self, state: ScanState, tracker: ProgressTracker, total: int, scanned: int = 0
    ) -> None:
        self._state = state
        tracker.start(state, total=total, scanned=scanned)
        logger.debug("Scan state: %s", state.value)

    def _walk(
        self,
        root: Path,
        cache: LibraryCache,
        result: ScanResult,
        tracker: ProgressTracker,
    ) -> Tuple[List[TrackFile], Dict[Path, TrackMetadata], List[TrackFile]]:
        """Collect candidates and partition them by cache freshness.

        Returns:
            (all candidates in discovery order, cache hits, files to extract)
        """
        candidates: List[TrackFile] = []
        resolved: Dict[Path, TrackMetadata] = {}
        stale: List[TrackFile] = []

        for path in self.walker.walk(root, result.walk_warnings):
            if self.cancelled:
                break
            try:
                fingerprint = Fingerprint.of(path)
            except OSError as e:
                self._record_failure(
                    cache, result, UnreadableMedia(path, f"cannot stat file: {e}")
                )
                continue

            track = TrackFile(path=path, fingerprint=fingerprint)
            candidates.append(track)

            entry = cache.lookup_fresh(path, fingerprint)
            if entry is not None:
                resolved[path] = entry.metadata
            else:
                stale.append(track)
            tracker.update(scanned=len(resolved), total=len(candidates))

        logger.info(
            "Found %d audio files: %d cached, %d to read",
            len(candidates),
            len(resolved),
            len(stale),
        )
        return candidates, resolved, stale

    def _extract(
        self,
        stale: List[TrackFile],
        cache: LibraryCache,
        resolved: Dict[Path, TrackMetadata],
        result: ScanResult,
        tracker: ProgressTracker,
    ) -> None:
        """Fan extraction out to worker threads and merge results here.

        At most ``max_workers`` extractions are in flight. One abandoned after
        the soft deadline no longer counts, so its slot goes to the next file
        while the hung thread is left to finish on its own.
        """
        if not stale:
            return

        workers = min(self.max_workers, len(stale))
        logger.debug("Extracting metadata with %d threads", workers)
        queue = deque(stale)
        in_flight: Dict["Future[Optional[Outcome]]", Tuple[TrackFile, float]] = {}
        handled = len(resolved)
        since_save = 0

        while queue or in_flight:
            while queue and len(in_flight) < workers:
                track = queue.popleft()
                in_flight[self._launch(track.path)] = (track, time.monotonic())

            done, _ = wait(
                in_flight, timeout=self.poll_interval, return_when=FIRST_COMPLETED
            )
            for future in done:
                track, _ = in_flight.pop(future)
                outcome = future.result()
                if outcome is None:
                    # Worker saw the cancellation flag before starting
                    continue
                handled += 1
                if isinstance(outcome, MediaError):
                    self._record_failure(cache, result, outcome)
                else:
                    cache.upsert(track.path, track.fingerprint, outcome)
                    resolved[track.path] = outcome
                    result.extracted += 1
                    since_save += 1
                tracker.update(scanned=handled, current_path=track.path)

            if self.cancelled:
                # Running extractions are abandoned, queued ones never start
                break

            for track in self._expire_overdue(in_flight):
                handled += 1
                self._record_failure(
                    cache,
                    result,
                    UnreadableMedia(
                        track.path,
                        f"metadata extraction timed out after {self.file_timeout}s",
                    ),
                )
                tracker.update(scanned=handled, current_path=track.path)

            if self.save_interval and since_save >= self.save_interval:
                since_save = 0
                self._persist(cache.root, cache, result, incremental=True)

    def _launch(self, path: Path) -> "Future[Optional[Outcome]]":
        """Start one extraction on a daemon thread."""
        future: "Future[Optional[Outcome]]" = Future()
        self._thread_count += 1
        thread = threading.Thread(
            target=self._run_extraction,
            args=(future, path),
            name=f"metadata_{self._thread_count}",
            daemon=True,
        )
        thread.start()
        return future

    def _run_extraction(self, future: "Future[Optional[Outcome]]", path: Path) -> None:
        if future.set_running_or_notify_cancel():
            future.set_result(self._extract_one(path))

    def _extract_one(self, path: Path) -> Optional[Outcome]:
        """Worker unit: read one file, never raise."""
        if self._cancel_event.is_set():
            return None
        try:
            return self.reader.extract(path)
        except MediaError as e:
            return e
        except Exception as e:
            # Unexpected parser failures become per-file diagnostics
            logger.debug("Unexpected error reading %s", path, exc_info=True)
            return CorruptMetadata(path, f"unexpected {type(e).__name__}: {e}")

    def _expire_overdue(
        self, in_flight: Dict["Future[Optional[Outcome]]", Tuple[TrackFile, float]]
    ) -> List[TrackFile]:
        """Abandon extractions that exceeded the soft deadline."""
        if not self.file_timeout:
            return []
        now = time.monotonic()
        expired: List[TrackFile] = []
        for future, (track, began) in list(in_flight.items()):
            if now - began > self.file_timeout:
                logger.warning("Giving up on %s after %.0fs", track.path, now - began)
                del in_flight[future]
                expired.append(track)
        return expired

    def _record_failure(
        self, cache: LibraryCache, result: ScanResult, error: MediaError
    ) -> None:
        logger.debug("Skipping %s: %s", error.path, error.message)
        result.diagnostics.append(
            Diagnostic(path=error.path, kind=error.kind, message=error.message)
        )
        cache.remove(error.path)

    def _persist(
        self,
        root: Path,
        cache: LibraryCache,
        result: ScanResult,
        incremental: bool = False,
    ) -> None:
        """Save the cache if needed; failures are reported, not raised."""
        needs_save = cache.dirty or cache.cold_start_reason is not None
        if not needs_save and not incremental:
            # First scan of an empty or fully failing library still gets a file
            needs_save = not self.cache_store.cache_path(root).exists()
        if not needs_save:
            # Nothing changed: the file on disk is already current
            if not incremental:
                result.cache_saved = result.cache_error is None
            return
        try:
            self.cache_store.save(root, cache)
        except CachePersistFailure as e:
            logger.warning("Could not save metadata cache: %s", e)
            result.cache_error = str(e)
            result.cache_saved = False
            return
        cache.cold_start_reason = None
        if not incremental:
            result.cache_error = None
            result.cache_saved = True

    def _log_summary(self, result: ScanResult) -> None:
        logger.info(
            "Scan %s: %d tracks (%d cached, %d read), %d skipped, %d pruned in %.2fs",
            result.state.value,
            len(result.catalog),
            result.cache_hits,
            result.extracted,
            result.skipped,
            result.pruned,
            result.duration_seconds,
        )
        if result.diagnostics:
            logger.warning("Scan completed with %d files skipped", result.skipped)
