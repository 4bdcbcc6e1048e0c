"""Persistent metadata cache keyed by file path.

One JSON document per library root holds, for every known file, the
fingerprint it had when its metadata was extracted. An entry is only trusted
while the file's current fingerprint matches exactly.
"""

import hashlib
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from ...exceptions import CacheLoadFailure, CachePersistFailure
from ...models import CacheEntry, Fingerprint, TrackMetadata
from ...utils.atomic import atomic_write_text
from .schema import CACHE_SCHEMA_VERSION, CacheDocument, CachedTrackRecord

logger = logging.getLogger(__name__)


class LibraryCache:
    """In-memory cache of one library root.

    All access goes through an internal lock, so the cache may be read and
    updated from several threads.
    """

    def __init__(
        self,
        root: Path,
        entries: Optional[Dict[str, CacheEntry]] = None,
        cold_start_reason: Optional[str] = None,
    ) -> None:
        """Initialize library cache.

        Args:
            root: Library root the cache belongs to
            entries: Initial entries keyed by absolute path string
            cold_start_reason: Why a persisted cache was discarded, if it was
        """
        self.root = Path(root)
        self._entries: Dict[str, CacheEntry] = dict(entries or {})
        self._lock = threading.Lock()
        self._dirty = False
        self.cold_start_reason = cold_start_reason

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._entries

    @property
    def dirty(self) -> bool:
        """Whether the cache changed since it was loaded or last saved."""
        return self._dirty

    def mark_clean(self) -> None:
        """Record that the current contents are persisted."""
        self._dirty = False

    def lookup(self, path: Union[str, Path]) -> Optional[CacheEntry]:
        """Return the entry stored for a path, if any."""
        with self._lock:
            return self._entries.get(str(path))

    def lookup_fresh(
        self, path: Union[str, Path], fingerprint: Fingerprint
    ) -> Optional[CacheEntry]:
        """Return the entry for a path only if its fingerprint still matches."""
        entry = self.lookup(path)
        if entry is not None and entry.is_valid_for(fingerprint):
            return entry
        return None

    def upsert(
        self, path: Union[str, Path], fingerprint: Fingerprint, metadata: TrackMetadata
    ) -> None:
        """Insert or overwrite the entry of a path."""
        entry = CacheEntry(fingerprint=fingerprint, metadata=metadata)
        with self._lock:
            self._entries[str(path)] = entry
            self._dirty = True

    def remove(self, path: Union[str, Path]) -> bool:
        """Drop the entry of a path. Returns True if one existed."""
        with self._lock:
            removed = self._entries.pop(str(path), None) is not None
            if removed:
                self._dirty = True
            return removed

    def prune(self, current_paths: Iterable[Union[str, Path]]) -> int:
        """Remove entries whose path is not in ``current_paths``.

        Args:
            current_paths: Every candidate path present on disk

        Returns:
            Number of entries removed
        """
        keep = {str(p) for p in current_paths}
        with self._lock:
            stale = [path for path in self._entries if path not in keep]
            for path in stale:
                del self._entries[path]
            if stale:
                self._dirty = True
        if stale:
            logger.debug("Pruned %d cache entries for %s", len(stale), self.root)
        return len(stale)

    def items(self) -> Iterator[Tuple[str, CacheEntry]]:
        """Iterate over a snapshot of (path, entry) pairs."""
        with self._lock:
            snapshot = list(self._entries.items())
        return iter(snapshot)

    def to_document(self) -> CacheDocument:
        """Build the persisted representation of this cache."""
        return CacheDocument(
            schema_version=CACHE_SCHEMA_VERSION,
            root=str(self.root),
            saved_at=datetime.now(),
            entries={
                path: CachedTrackRecord.from_entry(entry)
                for path, entry in self.items()
            },
        )


class CacheStore:
    """Loads and saves :class:`LibraryCache` instances, one file per root."""

    def __init__(self, cache_directory: Path) -> None:
        """Initialize cache store.

        Args:
            cache_directory: Directory holding the cache files
        """
        self.cache_directory = Path(cache_directory)

    def cache_path(self, root: Path) -> Path:
        """Return the cache file used for a library root."""
        digest = hashlib.sha1(str(Path(root)).encode("utf-8")).hexdigest()[:16]
        return self.cache_directory / f"library-{digest}.json"

    def load(self, root: Path) -> LibraryCache:
        """Load the cache of a root.

        A missing file gives an empty cache. A corrupt file, a file written for
        another root or by another schema version also gives an empty cache
        (a cold start); the reason is logged and kept on the returned cache.

        Args:
            root: Library root

        Returns:
            LibraryCache, possibly empty
        """
        root = Path(root)
        path = self.cache_path(root)
        if not path.exists():
            logger.debug("No cache for %s at %s", root, path)
            return LibraryCache(root)

        try:
            document = self._read_document(path)
        except CacheLoadFailure as e:
            logger.warning("Ignoring unreadable cache %s, full rescan: %s", path, e)
            return LibraryCache(root, cold_start_reason=str(e))

        if document is None:
            reason = "cache schema version changed"
            logger.info("Cache %s has an old schema version, full rescan", path)
            return LibraryCache(root, cold_start_reason=reason)

        if document.root != str(root):
            reason = f"cache belongs to {document.root}"
            logger.warning("Cache %s belongs to %s, ignoring", path, document.root)
            return LibraryCache(root, cold_start_reason=reason)

        entries = {p: record.to_entry() for p, record in document.entries.items()}
        logger.info("Loaded %d cached tracks for %s", len(entries), root)
        return LibraryCache(root, entries)

    def _read_document(self, path: Path) -> Optional[CacheDocument]:
        """Parse a cache file. Returns None on a schema version mismatch."""
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheLoadFailure(f"cannot parse cache file: {e}") from e

        if not isinstance(raw, dict):
            raise CacheLoadFailure("cache file is not a JSON object")
        if raw.get("schema_version") != CACHE_SCHEMA_VERSION:
            return None

        try:
            return CacheDocument.model_validate(raw)
        except ValidationError as e:
            raise CacheLoadFailure(
                f"invalid cache contents ({e.error_count()} errors)"
            ) from e

    def save(self, root: Path, cache: LibraryCache) -> Path:
        """Persist a cache atomically.

        The document is written to a temporary file and renamed into place,
        so an interrupted save leaves the previous cache intact.

        Args:
            root: Library root
            cache: Cache to write

        Returns:
            Path of the written cache file

        Raises:
            CachePersistFailure: If the file cannot be written
        """
        path = self.cache_path(root)
        document = cache.to_document()
        try:
            atomic_write_text(path, document.model_dump_json())
        except OSError as e:
            raise CachePersistFailure(f"cannot write cache {path}: {e}") from e
        cache.mark_clean()
        logger.debug("Saved %d cache entries to %s", len(document.entries), path)
        return path

    def clear(self, root: Path) -> bool:
        """Delete the cache file of a root. Returns True if one existed."""
        path = self.cache_path(root)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed cache %s", path)
        return True

    def clear_all(self) -> int:
        """Delete every cache file. Returns the number removed."""
        removed = 0
        for path in self.cache_files():
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            removed += 1
        logger.info("Removed %d cache file(s) from %s", removed, self.cache_directory)
        return removed

    def info(self, root: Path) -> Dict[str, Any]:
        """Describe the persisted cache of a root.

        Returns:
            Dictionary with path, existence, size, entry count and save time
        """
        path = self.cache_path(root)
        info: Dict[str, Any] = {
            "path": str(path),
            "exists": path.exists(),
            "size_bytes": 0,
            "entries": 0,
            "schema_version": None,
            "saved_at": None,
        }
        if not info["exists"]:
            return info

        info["size_bytes"] = path.stat().st_size
        try:
            document = self._read_document(path)
        except CacheLoadFailure as e:
            info["error"] = str(e)
            return info
        if document is None:
            info["error"] = "cache schema version changed"
        else:
            info["entries"] = len(document.entries)
            info["schema_version"] = document.schema_version
            info["saved_at"] = document.saved_at
        return info

    def cache_files(self) -> List[Path]:
        """List cache files present in the cache directory."""
        if not self.cache_directory.exists():
            return []
        return sorted(self.cache_directory.glob("library-*.json"))
