"""Cache module.

Persistent, fingerprint-validated metadata cache.
"""

from .schema import CACHE_SCHEMA_VERSION, CacheDocument, CachedTrackRecord
from .store import CacheStore, LibraryCache

__all__ = [
    "CACHE_SCHEMA_VERSION",
    "CacheDocument",
    "CachedTrackRecord",
    "CacheStore",
    "LibraryCache",
]
