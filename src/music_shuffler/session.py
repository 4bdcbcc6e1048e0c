"""Library session: the explicit context of one selected library root.

A session is created when a root is chosen and closed when the user picks
another one. It owns the cache store, the scanner, the most recent scan
result and the current playlist.
"""

import logging
import random
import threading
from pathlib import Path
from typing import Optional

from .config import Config, get_config
from .core.cache import CacheStore
from .core.filesystem import PathWalker, check_root
from .core.metadata import MetadataReader
from .core.playlist import PlaylistSampler
from .core.scanner import LibraryScanner, ProgressCallback, ScanResult
from .models import LibraryCatalog, Playlist

logger = logging.getLogger(__name__)


class LibrarySession:
    """Scanning and sampling context bound to one library root."""

    def __init__(
        self,
        root: Path,
        config: Optional[Config] = None,
        reader: Optional[MetadataReader] = None,
        remember_root: bool = True,
    ) -> None:
        """Initialize library session.

        Args:
            root: Library root directory
            config: Application configuration (creates new if not provided)
            reader: Metadata reader override
            remember_root: Persist the root as the default for later sessions

        Raises:
            RootInaccessible: If the root cannot be listed
        """
        self.config = config or get_config()
        self.root = check_root(root)
        self.cache_store = CacheStore(self.config.cache_directory)
        self.reader = reader or MetadataReader()
        self.cancel_event = threading.Event()
        self.scanner = LibraryScanner(
            self.cache_store,
            reader=self.reader,
            walker=PathWalker(follow_symlinks=self.config.follow_symlinks),
            max_workers=self.config.max_workers,
            file_timeout=self.config.file_timeout,
            save_interval=self.config.save_interval,
            cancel_event=self.cancel_event,
        )
        self.sampler = PlaylistSampler(max_size=self.config.playlist_size)
        self.last_result: Optional[ScanResult] = None
        self.playlist: Optional[Playlist] = None
        self._closed = False

        if remember_root:
            self.config.save_library_root(self.root)
        logger.debug("Opened library session for %s", self.root)

    @classmethod
    def open_last(cls, config: Optional[Config] = None) -> Optional["LibrarySession"]:
        """Open a session on the persisted library root, if there is one."""
        config = config or get_config()
        root = config.load_library_root()
        if root is None:
            return None
        return cls(root, config=config, remember_root=False)

    def __enter__(self) -> "LibrarySession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def catalog(self) -> Optional[LibraryCatalog]:
        """Catalog of the most recent scan."""
        return self.last_result.catalog if self.last_result else None

    def scan(self, progress_callback: Optional[ProgressCallback] = None) -> ScanResult:
        """Scan the library root, reusing cached metadata where possible.

        Raises:
            RootInaccessible: If the root became unreadable
            RuntimeError: If the session is closed
        """
        self._check_open()
        self.last_result = self.scanner.scan(self.root, progress_callback)
        return self.last_result

    def shuffle(
        self, count: Optional[int] = None, rng: Optional[random.Random] = None
    ) -> Playlist:
        """Draw a new random playlist, scanning first if needed.

        The previous playlist is discarded.
        """
        self._check_open()
        if self.last_result is None:
            self.scan()
        assert self.last_result is not None
        self.playlist = self.sampler.sample(self.last_result.catalog, count, rng)
        return self.playlist

    def artwork(self, index: int) -> Optional[bytes]:
        """Extract embedded artwork of a catalog entry on demand."""
        catalog = self.catalog
        if catalog is None:
            raise RuntimeError("Library has not been scanned yet")
        entry = catalog[index]
        if not entry.metadata.has_artwork:
            return None
        return self.reader.read_artwork(entry.path)

    def cancel(self) -> None:
        """Cancel a running scan."""
        self.scanner.cancel()

    def close(self) -> None:
        """Tear the session down; a running scan is cancelled."""
        if self._closed:
            return
        self.cancel_event.set()
        self.last_result = None
        self.playlist = None
        self._closed = True
        logger.debug("Closed library session for %s", self.root)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Library session is closed")
