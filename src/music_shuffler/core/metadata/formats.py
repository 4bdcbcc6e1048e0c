"""Per-format metadata readers.

Each supported container is described by one :class:`FormatReader`: a mutagen
loader, a magic-number check and the tag layout it uses. The set is closed;
:data:`FORMAT_READERS` maps every :class:`TrackFormat` to its reader.
"""

import base64
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple

import mutagen
from mutagen.aac import AAC
from mutagen.flac import FLAC, Picture
from mutagen.id3 import ID3
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4, MP4Tags
from mutagen.oggflac import OggFLAC
from mutagen.oggopus import OggOpus
from mutagen.oggspeex import OggSpeex
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE

from ...exceptions import CorruptMetadata, UnsupportedCodec
from ...models import TrackFormat, TrackMetadata

logger = logging.getLogger(__name__)

# Errors mutagen lets escape on malformed input besides MutagenError
PARSE_ERRORS = (
    mutagen.MutagenError,
    struct.error,
    ValueError,
    EOFError,
    IndexError,
    KeyError,
    UnicodeDecodeError,
)

HEADER_SIZE = 12


class TagStyle(str, Enum):
    """Tag layouts found in the supported containers."""

    ID3 = "id3"
    VORBIS = "vorbis"
    MP4 = "mp4"


# Text frame/atom names per tag layout, in (title, artist, album) order
_TEXT_KEYS: Dict[TagStyle, Tuple[Sequence[str], Sequence[str], Sequence[str]]] = {
    TagStyle.ID3: (("TIT2",), ("TPE1", "TPE2"), ("TALB",)),
    TagStyle.VORBIS: (("title",), ("artist", "albumartist"), ("album",)),
    TagStyle.MP4: (("\xa9nam",), ("\xa9ART", "aART"), ("\xa9alb",)),
}


@dataclass(frozen=True)
class RawTags:
    """Tag values read from a file before fallbacks are applied."""

    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    duration_seconds: Optional[float] = None
    has_artwork: bool = False


def _load_ogg(path: str) -> Optional[mutagen.FileType]:
    # Ogg is a container; try each codec mutagen understands inside it
    return mutagen.File(path, options=[OggVorbis, OggOpus, OggFLAC, OggSpeex])


def _is_mpeg_audio(header: bytes) -> bool:
    # 11 sync bits, layer bits non-zero (layer zero is ADTS AAC)
    return (
        len(header) >= 2
        and header[0] == 0xFF
        and (header[1] & 0xE0) == 0xE0
        and (header[1] & 0x06) != 0
    )


def _is_adts(header: bytes) -> bool:
    return len(header) >= 2 and header[0] == 0xFF and (header[1] & 0xF6) == 0xF0


def _is_flac(header: bytes) -> bool:
    return header[:4] == b"fLaC"


def _is_ogg(header: bytes) -> bool:
    return header[:4] == b"OggS"


def _is_wav(header: bytes) -> bool:
    return header[:4] in (b"RIFF", b"RF64") and header[8:12] == b"WAVE"


def _is_mp4(header: bytes) -> bool:
    return header[4:8] == b"ftyp"


@dataclass(frozen=True)
class FormatReader:
    """Metadata extraction for one container format."""

    format: TrackFormat
    loader: Callable[[str], Optional[mutagen.FileType]]
    matches_header: Callable[[bytes], bool]

    def extract(self, path: Path) -> TrackMetadata:
        """Read metadata of ``path`` as this format.

        Args:
            path: Audio file

        Returns:
            TrackMetadata with fallbacks applied

        Raises:
            UnsupportedCodec: If mutagen cannot identify the payload
            CorruptMetadata: If the container parses but its tags do not
        """
        audio = self.load(path)
        try:
            raw = read_raw_tags(audio)
        except PARSE_ERRORS as e:
            raise CorruptMetadata(
                path, f"malformed {self.format.value} tags: {e}"
            ) from e
        return TrackMetadata.with_fallbacks(
            path,
            title=raw.title,
            artist=raw.artist,
            album=raw.album,
            duration_seconds=raw.duration_seconds,
            has_artwork=raw.has_artwork,
        )

    def load(self, path: Path) -> mutagen.FileType:
        """Parse ``path`` with mutagen.

        Raises:
            UnsupportedCodec: If the file is not a valid stream of this format
            CorruptMetadata: If the stream header is valid but parsing fails
        """
        with open(path, "rb") as fh:
            header_ok = self.matches_header(sniff_header(fh))
        try:
            audio = self.loader(str(path))
        except PARSE_ERRORS as e:
            if header_ok:
                raise CorruptMetadata(
                    path, f"{self.format.value} container could not be parsed: {e}"
                ) from e
            raise UnsupportedCodec(
                path, f"payload is not valid {self.format.value}: {e}"
            ) from e
        if audio is None:
            raise UnsupportedCodec(path, f"no {self.format.value} decoder matched")
        return audio

    def read_artwork(self, path: Path) -> Optional[bytes]:
        """Return the first embedded picture of ``path``, if any."""
        audio = self.load(path)
        try:
            return first_picture(audio)
        except PARSE_ERRORS as e:
            raise CorruptMetadata(path, f"malformed artwork: {e}") from e


FORMAT_READERS: Dict[TrackFormat, FormatReader] = {
    TrackFormat.MP3: FormatReader(TrackFormat.MP3, MP3, _is_mpeg_audio),
    TrackFormat.FLAC: FormatReader(TrackFormat.FLAC, FLAC, _is_flac),
    TrackFormat.OGG: FormatReader(TrackFormat.OGG, _load_ogg, _is_ogg),
    TrackFormat.WAV: FormatReader(TrackFormat.WAV, WAVE, _is_wav),
    TrackFormat.M4A: FormatReader(TrackFormat.M4A, MP4, _is_mp4),
    TrackFormat.AAC: FormatReader(TrackFormat.AAC, AAC, _is_adts),
}

# Checked in order; MP3 last because the MPEG sync check is the loosest
_SNIFF_ORDER: List[TrackFormat] = [
    TrackFormat.FLAC,
    TrackFormat.OGG,
    TrackFormat.WAV,
    TrackFormat.M4A,
    TrackFormat.AAC,
    TrackFormat.MP3,
]


def sniff_header(fh: BinaryIO) -> bytes:
    """Read the first bytes of the audio payload, skipping an ID3v2 prefix."""
    header = fh.read(10)
    if len(header) == 10 and header[:3] == b"ID3":
        # Syncsafe tag size, plus a 10 byte footer when flagged
        size = 0
        for byte in header[6:10]:
            size = (size << 7) | (byte & 0x7F)
        if header[5] & 0x10:
            size += 10
        fh.seek(10 + size)
        return fh.read(HEADER_SIZE)
    return header + fh.read(HEADER_SIZE - len(header))


def detect_format(header: bytes) -> Optional[TrackFormat]:
    """Identify a container from its leading bytes."""
    for fmt in _SNIFF_ORDER:
        if FORMAT_READERS[fmt].matches_header(header):
            return fmt
    return None


def read_raw_tags(audio: mutagen.FileType) -> RawTags:
    """Pull title/artist/album/duration/artwork out of a parsed file."""
    info = getattr(audio, "info", None)
    duration = getattr(info, "length", None) if info is not None else None

    tags = getattr(audio, "tags", None)
    style = _tag_style(tags)
    if style is None:
        return RawTags(
            duration_seconds=duration,
            has_artwork=bool(getattr(audio, "pictures", None)),
        )

    title_keys, artist_keys, album_keys = _TEXT_KEYS[style]
    return RawTags(
        title=_first_text(tags, title_keys, style),
        artist=_first_text(tags, artist_keys, style),
        album=_first_text(tags, album_keys, style),
        duration_seconds=duration,
        has_artwork=first_picture(audio) is not None,
    )


def first_picture(audio: mutagen.FileType) -> Optional[bytes]:
    """Return the raw bytes of the first embedded picture."""
    pictures = getattr(audio, "pictures", None)
    if pictures:
        return bytes(pictures[0].data)

    tags = getattr(audio, "tags", None)
    style = _tag_style(tags)
    if style is TagStyle.ID3:
        frames = tags.getall("APIC")
        return bytes(frames[0].data) if frames else None
    if style is TagStyle.MP4:
        covers = tags.get("covr")
        return bytes(covers[0]) if covers else None
    if style is TagStyle.VORBIS:
        blocks = tags.get("metadata_block_picture")
        if blocks:
            return bytes(Picture(base64.b64decode(blocks[0])).data)
    return None


def _tag_style(tags: Any) -> Optional[TagStyle]:
    if tags is None:
        return None
    if isinstance(tags, ID3):
        return TagStyle.ID3
    if isinstance(tags, MP4Tags):
        return TagStyle.MP4
    # Vorbis comment dicts (FLAC, Ogg) all carry a vendor string
    if hasattr(tags, "vendor"):
        return TagStyle.VORBIS
    return None


def _first_text(tags: Any, keys: Sequence[str], style: TagStyle) -> Optional[str]:
    for key in keys:
        if style is TagStyle.ID3:
            frames = tags.getall(key)
            values: List[Any] = list(frames[0].text) if frames else []
        else:
            values = list(tags.get(key) or [])
        for value in values:
            text = str(value).strip()
            if text:
                return text
    return None
