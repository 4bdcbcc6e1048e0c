"""Shared fixtures for music shuffler tests."""

import base64
import struct
import threading
import wave
from pathlib import Path
from typing import List, Optional

import pytest
from mutagen.flac import FLAC, Picture
from mutagen.id3 import ID3, TALB, TIT2, TPE1
from mutagen.mp4 import MP4, MP4Cover
from mutagen.ogg import OggPage

from music_shuffler.config import Config
from music_shuffler.core.metadata import MetadataReader

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no CRC, no padding
MP3_FRAME_HEADER = b"\xff\xfb\x90\x00"
MP3_FRAME_LENGTH = 417

# MPEG-4 ADTS, AAC LC, 44.1 kHz, stereo, 200 byte frames, no CRC
ADTS_FRAME_HEADER = b"\xff\xf1\x50\x80\x19\x1f\xfc"
ADTS_FRAME_LENGTH = 200

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"


def write_wav(path: Path, seconds: float = 1.0, rate: int = 8000) -> Path:
    """Write a silent mono 16-bit WAV file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frames = int(seconds * rate)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(struct.pack("<h", 0) * frames)
    return path


def write_mp3(
    path: Path,
    frames: int = 40,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    album: Optional[str] = None,
) -> Path:
    """Write a stream of silent MPEG audio frames, optionally ID3 tagged."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = MP3_FRAME_HEADER + b"\x00" * (MP3_FRAME_LENGTH - len(MP3_FRAME_HEADER))
    path.write_bytes(frame * frames)

    if title or artist or album:
        tags = ID3()
        if title:
            tags.add(TIT2(encoding=3, text=title))
        if artist:
            tags.add(TPE1(encoding=3, text=artist))
        if album:
            tags.add(TALB(encoding=3, text=album))
        tags.save(str(path))
    return path


def _picture(data: bytes) -> Picture:
    picture = Picture()
    picture.type = 3
    picture.mime = "image/png"
    picture.data = data
    return picture


def write_flac(
    path: Path,
    seconds: float = 10.0,
    rate: int = 44100,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    album: Optional[str] = None,
    artwork: Optional[bytes] = None,
) -> Path:
    """Write a FLAC header without audio frames, then tag it with mutagen."""
    path.parent.mkdir(parents=True, exist_ok=True)
    samples = int(seconds * rate)
    # Sample rate (20 bits), channels - 1 (3), bits per sample - 1 (5), samples (36)
    packed = (rate << 44) | (1 << 41) | (15 << 36) | samples
    streaminfo = (
        struct.pack(">HH", 4096, 4096)
        + b"\x00" * 6
        + struct.pack(">Q", packed)
        + b"\x00" * 16
    )
    header = b"\x80" + struct.pack(">I", len(streaminfo))[1:]
    path.write_bytes(b"fLaC" + header + streaminfo)

    if title or artist or album or artwork:
        audio = FLAC(str(path))
        for key, value in (("title", title), ("artist", artist), ("album", album)):
            if value:
                audio[key] = value
        if artwork:
            audio.add_picture(_picture(artwork))
        audio.save()
    return path


def write_ogg_vorbis(
    path: Path,
    seconds: float = 2.0,
    rate: int = 44100,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    album: Optional[str] = None,
    artwork: Optional[bytes] = None,
) -> Path:
    """Write an Ogg Vorbis stream made of header packets and one empty page."""
    path.parent.mkdir(parents=True, exist_ok=True)
    identification = (
        b"\x01vorbis" + struct.pack("<IBI3i", 0, 2, rate, 0, 128000, 0) + b"\xb8\x01"
    )

    comments: List[bytes] = []
    for key, value in (("TITLE", title), ("ARTIST", artist), ("ALBUM", album)):
        if value:
            comments.append(f"{key}={value}".encode("utf-8"))
    if artwork:
        encoded = base64.b64encode(_picture(artwork).write()).decode("ascii")
        comments.append(f"METADATA_BLOCK_PICTURE={encoded}".encode("ascii"))
    vendor = b"music-shuffler tests"
    comment = (
        b"\x03vorbis"
        + struct.pack("<I", len(vendor))
        + vendor
        + struct.pack("<I", len(comments))
        + b"".join(struct.pack("<I", len(c)) + c for c in comments)
        + b"\x01"
    )
    setup = b"\x05vorbis" + b"\x00" * 8

    layout = [([identification], 0), ([comment, setup], 0), ([b"\x00" * 16], 0)]
    pages = []
    for sequence, (packets, position) in enumerate(layout):
        page = OggPage()
        page.serial = 0x5EED
        page.sequence = sequence
        page.position = position
        page.packets = packets
        pages.append(page)
    pages[0].first = True
    pages[-1].last = True
    # Granule position of the final page is the stream length in samples
    pages[-1].position = int(seconds * rate)
    path.write_bytes(b"".join(page.write() for page in pages))
    return path


def _atom(name: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", len(payload) + 8) + name + payload


def write_m4a(
    path: Path,
    seconds: float = 3.0,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    album: Optional[str] = None,
    artwork: Optional[bytes] = None,
) -> Path:
    """Write a minimal MP4 audio container, then tag it with mutagen."""
    path.parent.mkdir(parents=True, exist_ok=True)
    timescale = 1000
    mdhd = _atom(
        b"mdhd",
        b"\x00" * 12
        + struct.pack(">2I", timescale, int(seconds * timescale))
        + b"\x00" * 4,
    )
    hdlr = _atom(b"hdlr", b"\x00" * 8 + b"soun" + b"\x00" * 13)
    moov = _atom(b"moov", _atom(b"trak", _atom(b"mdia", mdhd + hdlr)))
    ftyp = _atom(b"ftyp", b"M4A \x00\x00\x00\x00M4A isom")
    path.write_bytes(ftyp + moov + _atom(b"mdat", b"\x00" * 64))

    if title or artist or album or artwork:
        audio = MP4(str(path))
        for key, value in (("\xa9nam", title), ("\xa9ART", artist), ("\xa9alb", album)):
            if value:
                audio[key] = [value]
        if artwork:
            audio["covr"] = [MP4Cover(artwork, imageformat=MP4Cover.FORMAT_PNG)]
        audio.save()
    return path


def write_aac(path: Path, frames: int = 40) -> Path:
    """Write a stream of empty ADTS AAC frames."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = ADTS_FRAME_HEADER + b"\x00" * (ADTS_FRAME_LENGTH - len(ADTS_FRAME_HEADER))
    path.write_bytes(frame * frames)
    return path


class CountingReader(MetadataReader):
    """Metadata reader that records every file it is asked to extract."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Path] = []
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def extract(self, path):
        with self._lock:
            self.calls.append(Path(path))
        return super().extract(path)


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Configuration isolated under a temporary home directory."""
    for name in (
        "MUSIC_SHUFFLER_CACHE_DIR",
        "MUSIC_SHUFFLER_PLAYLIST_SIZE",
        "MUSIC_SHUFFLER_MAX_WORKERS",
        "MUSIC_SHUFFLER_FILE_TIMEOUT",
        "MUSIC_SHUFFLER_FOLLOW_SYMLINKS",
        "MUSIC_SHUFFLER_SAVE_INTERVAL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MUSIC_SHUFFLER_HOME", str(tmp_path / "home"))
    return Config()


@pytest.fixture
def library(tmp_path):
    """Library root with three WAV tracks in nested folders."""
    root = tmp_path / "music"
    write_wav(root / "Artist A" / "one.wav", seconds=1.0)
    write_wav(root / "Artist A" / "Album" / "two.wav", seconds=2.0)
    write_wav(root / "three.wav", seconds=0.5)
    return root.resolve()


@pytest.fixture
def reader():
    """Counting metadata reader."""
    return CountingReader()
