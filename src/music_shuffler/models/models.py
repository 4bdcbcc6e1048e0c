"""Data models for the music shuffler library engine."""

import math
import os
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..exceptions import ErrorKind

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


class TrackFormat(str, Enum):
    """Container formats the library engine can read."""

    MP3 = "mp3"
    FLAC = "flac"
    OGG = "ogg"
    WAV = "wav"
    M4A = "m4a"
    AAC = "aac"

    @property
    def extension(self) -> str:
        """File extension including the leading dot."""
        return f".{self.value}"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["TrackFormat"]:
        """Return the format matching a path's extension, case-insensitively."""
        suffix = Path(path).suffix.lower().lstrip(".")
        try:
            return cls(suffix)
        except ValueError:
            return None


SUPPORTED_EXTENSIONS = tuple(fmt.extension for fmt in TrackFormat)


class Fingerprint(BaseModel):
    """Staleness fingerprint of a file: size and modification time.

    ``modified_time`` is in nanoseconds since the epoch so that it survives a
    JSON round-trip without float rounding.
    """

    size: int
    modified_time: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_stat(cls, stat_result: os.stat_result) -> "Fingerprint":
        """Build a fingerprint from ``os.stat`` output."""
        return cls(size=stat_result.st_size, modified_time=stat_result.st_mtime_ns)

    @classmethod
    def of(cls, path: Union[str, Path]) -> "Fingerprint":
        """Stat a file (without opening it) and return its fingerprint."""
        return cls.from_stat(os.stat(path))


class TrackMetadata(BaseModel):
    """Descriptive metadata of one track."""

    title: str
    artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    duration_seconds: float = 0.0
    has_artwork: bool = False

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def validate_duration(cls, v: Any) -> float:
        """Clamp missing, negative or non-finite durations to zero."""
        if v is None:
            return 0.0
        value = float(v)
        if math.isnan(value) or math.isinf(value) or value < 0:
            return 0.0
        return value

    @classmethod
    def with_fallbacks(
        cls,
        path: Union[str, Path],
        title: Optional[str] = None,
        artist: Optional[str] = None,
        album: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        has_artwork: bool = False,
    ) -> "TrackMetadata":
        """Create metadata, replacing absent or blank tags with defaults.

        Args:
            path: File the metadata belongs to (its stem is the title fallback)
            title: Title tag, if any
            artist: Artist tag, if any
            album: Album tag, if any
            duration_seconds: Duration in seconds, if known
            has_artwork: Whether the file embeds a picture

        Returns:
            TrackMetadata with every text field populated
        """
        return cls(
            title=_clean(title) or Path(path).stem,
            artist=_clean(artist) or UNKNOWN_ARTIST,
            album=_clean(album) or UNKNOWN_ALBUM,
            duration_seconds=duration_seconds,
            has_artwork=has_artwork,
        )

    @property
    def duration_formatted(self) -> str:
        """Get formatted duration string (m:ss)."""
        total = int(round(self.duration_seconds))
        return f"{total // 60}:{total % 60:02d}"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class TrackFile(BaseModel):
    """A file on disk: lookup path plus its current fingerprint."""

    path: Path
    fingerprint: Fingerprint

    model_config = ConfigDict(frozen=True)

    @field_validator("path", mode="before")
    @classmethod
    def validate_path(cls, v: Union[str, Path]) -> Path:
        """Validate file path."""
        return Path(v)


class CacheEntry(BaseModel):
    """Cached metadata of one file, valid only while the fingerprint matches."""

    fingerprint: Fingerprint
    metadata: TrackMetadata

    def is_valid_for(self, fingerprint: Fingerprint) -> bool:
        """Check whether this entry may be trusted for a file's fingerprint."""
        return self.fingerprint == fingerprint


class CatalogEntry(BaseModel):
    """A successfully resolved track of the current library."""

    track: TrackFile
    metadata: TrackMetadata

    @property
    def path(self) -> Path:
        """Absolute path of the track."""
        return self.track.path

    @property
    def display_name(self) -> str:
        """Get ``Artist - Title`` for display."""
        return f"{self.metadata.artist} - {self.metadata.title}"


@dataclass
class LibraryCatalog:
    """All tracks resolved by one scan, in discovery order."""

    root: Path
    entries: List[CatalogEntry] = dataclass_field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> CatalogEntry:
        return self.entries[index]

    def add(self, entry: CatalogEntry) -> None:
        """Append an entry to the catalog."""
        self.entries.append(entry)

    def paths(self) -> List[Path]:
        """Return the paths of all entries."""
        return [entry.path for entry in self.entries]

    def sorted_by_path(self) -> "LibraryCatalog":
        """Return a copy ordered by path, for deterministic comparisons."""
        return LibraryCatalog(
            root=self.root, entries=sorted(self.entries, key=lambda e: str(e.path))
        )

    @property
    def total_duration_seconds(self) -> float:
        """Get total duration of all tracks in seconds."""
        return sum(entry.metadata.duration_seconds for entry in self.entries)


class Playlist(BaseModel):
    """An ordered selection of catalog entries without duplicates."""

    indices: List[int] = []
    tracks: List[CatalogEntry] = []
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_selection(self) -> "Playlist":
        """Ensure indices are unique and line up with tracks."""
        if len(set(self.indices)) != len(self.indices):
            raise ValueError("playlist indices must be unique")
        if len(self.indices) != len(self.tracks):
            raise ValueError("playlist indices and tracks differ in length")
        return self

    def __len__(self) -> int:
        return len(self.tracks)

    @property
    def track_count(self) -> int:
        """Get number of tracks in playlist."""
        return len(self.tracks)

    @property
    def total_duration_seconds(self) -> float:
        """Get total duration of all tracks in seconds."""
        return sum(track.metadata.duration_seconds for track in self.tracks)


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal per-file failure recorded during a scan."""

    path: Path
    kind: ErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        """Convert diagnostic to dictionary format."""
        return {
            "path": str(self.path),
            "kind": self.kind.value,
            "message": self.message,
        }
