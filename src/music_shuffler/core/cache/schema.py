"""On-disk layout of the metadata cache."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from ...models import CacheEntry, Fingerprint, TrackMetadata

# Bump when the record layout changes; older files trigger a full rescan
CACHE_SCHEMA_VERSION = 2


class CachedTrackRecord(BaseModel):
    """One persisted cache entry, keyed by absolute path in the document."""

    size: int
    modified_time: int
    title: str
    artist: str
    album: str
    duration_seconds: float = 0.0
    has_artwork: bool = False

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> "CachedTrackRecord":
        """Flatten an in-memory entry for persistence."""
        return cls(
            size=entry.fingerprint.size,
            modified_time=entry.fingerprint.modified_time,
            title=entry.metadata.title,
            artist=entry.metadata.artist,
            album=entry.metadata.album,
            duration_seconds=entry.metadata.duration_seconds,
            has_artwork=entry.metadata.has_artwork,
        )

    def to_entry(self) -> CacheEntry:
        """Rebuild the in-memory entry."""
        return CacheEntry(
            fingerprint=Fingerprint(size=self.size, modified_time=self.modified_time),
            metadata=TrackMetadata(
                title=self.title,
                artist=self.artist,
                album=self.album,
                duration_seconds=self.duration_seconds,
                has_artwork=self.has_artwork,
            ),
        )


class CacheDocument(BaseModel):
    """The whole cache file of one library root."""

    schema_version: int
    root: str
    saved_at: Optional[datetime] = None
    entries: Dict[str, CachedTrackRecord] = {}

    model_config = ConfigDict(extra="ignore")
