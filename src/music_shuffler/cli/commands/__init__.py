"""CLI command modules."""

from .cache import cache
from .root import root
from .scan import scan_command
from .shuffle import shuffle_command

__all__ = [
    "cache",
    "root",
    "scan_command",
    "shuffle_command",
]
