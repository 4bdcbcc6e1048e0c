"""Filesystem module.

Handles discovering audio files under a library root.
"""

from .walker import PathWalker, WalkWarning, check_root

__all__ = [
    "PathWalker",
    "WalkWarning",
    "check_root",
]
