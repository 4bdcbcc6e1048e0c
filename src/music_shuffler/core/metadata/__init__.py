"""Metadata module.

Format-aware extraction of track metadata using mutagen.
"""

from .formats import FORMAT_READERS, FormatReader, detect_format
from .reader import MetadataReader

__all__ = [
    "FORMAT_READERS",
    "FormatReader",
    "MetadataReader",
    "detect_format",
]
