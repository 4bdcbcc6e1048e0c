"""Metadata extraction for a single audio file."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ...exceptions import UnreadableMedia, UnsupportedCodec
from ...models import TrackFormat, TrackMetadata
from .formats import FORMAT_READERS, FormatReader, detect_format, sniff_header

logger = logging.getLogger(__name__)


class MetadataReader:
    """Reads title, artist, album, duration and artwork from audio files.

    The container is identified from the file header; the extension is only
    used when the header is not recognized. Durations come from container
    headers (mutagen stream info), so no file is decoded in full.
    """

    def extract(self, path: Union[str, Path]) -> TrackMetadata:
        """Extract metadata from one file.

        Args:
            path: Audio file

        Returns:
            TrackMetadata with fallbacks applied

        Raises:
            UnreadableMedia: If the file cannot be opened or is empty
            CorruptMetadata: If the container parses but tag data is malformed
            UnsupportedCodec: If the payload matches no known decoder
        """
        path = Path(path)
        reader = self.reader_for(path)
        try:
            return reader.extract(path)
        except OSError as e:
            raise UnreadableMedia(path, f"cannot read file: {e}") from e

    def read_artwork(self, path: Union[str, Path]) -> Optional[bytes]:
        """Re-extract the first embedded picture of a file on demand.

        Artwork is never cached; callers decode the returned bytes themselves.

        Args:
            path: Audio file

        Returns:
            Raw image bytes, or None if the file embeds no picture

        Raises:
            MediaError: If the file cannot be read or parsed
        """
        path = Path(path)
        reader = self.reader_for(path)
        try:
            return reader.read_artwork(path)
        except OSError as e:
            raise UnreadableMedia(path, f"cannot read file: {e}") from e

    def reader_for(self, path: Path) -> FormatReader:
        """Select the format reader for a file.

        Args:
            path: Audio file

        Returns:
            FormatReader for the sniffed container, or for the extension

        Raises:
            UnreadableMedia: If the file cannot be opened or is empty
            UnsupportedCodec: If neither header nor extension is supported
        """
        try:
            with open(path, "rb") as fh:
                if os.fstat(fh.fileno()).st_size == 0:
                    raise UnreadableMedia(path, "file is empty")
                header = sniff_header(fh)
        except OSError as e:
            raise UnreadableMedia(path, f"cannot open file: {e}") from e

        by_extension = TrackFormat.from_path(path)
        detected = detect_format(header)
        if detected is not None:
            if by_extension is not None and detected is not by_extension:
                logger.debug(
                    "%s has .%s extension but %s content",
                    path.name,
                    by_extension.value,
                    detected.value,
                )
            return FORMAT_READERS[detected]
        if by_extension is None:
            raise UnsupportedCodec(path, "unrecognized file format")
        return FORMAT_READERS[by_extension]
