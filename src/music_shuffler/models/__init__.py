"""Models for the music shuffler library engine."""

from .models import (
    SUPPORTED_EXTENSIONS,
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    CacheEntry,
    CatalogEntry,
    Diagnostic,
    Fingerprint,
    LibraryCatalog,
    Playlist,
    TrackFile,
    TrackFormat,
    TrackMetadata,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "UNKNOWN_ALBUM",
    "UNKNOWN_ARTIST",
    "CacheEntry",
    "CatalogEntry",
    "Diagnostic",
    "Fingerprint",
    "LibraryCatalog",
    "Playlist",
    "TrackFile",
    "TrackFormat",
    "TrackMetadata",
]
