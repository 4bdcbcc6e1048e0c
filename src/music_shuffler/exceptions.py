"""Error taxonomy for library scanning.

Only root-level and cache-structural failures are raised out of a scan.
Per-file failures are subclasses of :class:`MediaError` and end up in the
scan diagnostics instead.
"""

from enum import Enum
from pathlib import Path
from typing import Union


class ErrorKind(str, Enum):
    """Kinds of failure reported by the scanning engine."""

    ROOT_INACCESSIBLE = "root_inaccessible"
    UNREADABLE_MEDIA = "unreadable_media"
    CORRUPT_METADATA = "corrupt_metadata"
    UNSUPPORTED_CODEC = "unsupported_codec"
    CACHE_PERSIST_FAILURE = "cache_persist_failure"
    CACHE_LOAD_FAILURE = "cache_load_failure"


class MusicShufflerError(Exception):
    """Base class for all music shuffler errors."""

    kind: ErrorKind


class MediaError(MusicShufflerError):
    """Raised when metadata cannot be extracted from a single file."""

    kind = ErrorKind.UNREADABLE_MEDIA

    def __init__(self, path: Union[str, Path], message: str) -> None:
        """Initialize media error.

        Args:
            path: File that failed
            message: Human readable reason
        """
        super().__init__(f"{path}: {message}")
        self.path = Path(path)
        self.message = message


class UnreadableMedia(MediaError):
    """File could not be opened or read."""

    kind = ErrorKind.UNREADABLE_MEDIA


class CorruptMetadata(MediaError):
    """Container was recognized but its tag data is malformed."""

    kind = ErrorKind.CORRUPT_METADATA


class UnsupportedCodec(MediaError):
    """Extension is supported but the payload matches no known decoder."""

    kind = ErrorKind.UNSUPPORTED_CODEC


class ScanFailed(MusicShufflerError):
    """Raised when a scan cannot run at all."""

    kind = ErrorKind.ROOT_INACCESSIBLE

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RootInaccessible(ScanFailed):
    """Library root does not exist, is not a directory or cannot be listed."""

    kind = ErrorKind.ROOT_INACCESSIBLE


class CachePersistFailure(MusicShufflerError):
    """Cache could not be written to disk."""

    kind = ErrorKind.CACHE_PERSIST_FAILURE


class CacheLoadFailure(MusicShufflerError):
    """Cache on disk could not be read or parsed."""

    kind = ErrorKind.CACHE_LOAD_FAILURE
