"""Music Shuffler.

Scans a local music library with a persistent metadata cache and builds
random playlists from it.
"""

__version__ = "0.1.0"

from .config import Config
from .core.cache import CacheStore
from .core.filesystem import PathWalker
from .core.metadata import MetadataReader
from .core.playlist import PlaylistSampler
from .core.scanner import LibraryScanner, ScanResult
from .models import LibraryCatalog, Playlist, TrackMetadata
from .session import LibrarySession

__all__ = [
    "CacheStore",
    "Config",
    "LibraryCatalog",
    "LibraryScanner",
    "LibrarySession",
    "MetadataReader",
    "PathWalker",
    "Playlist",
    "PlaylistSampler",
    "ScanResult",
    "TrackMetadata",
]
