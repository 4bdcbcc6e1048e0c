"""Scanner module.

Orchestrates discovery, cache lookups and parallel metadata extraction.
"""

from .library_scanner import LibraryScanner, ScanResult
from .progress import ProgressCallback, ProgressTracker, ScanProgress, ScanState

__all__ = [
    "LibraryScanner",
    "ProgressCallback",
    "ProgressTracker",
    "ScanProgress",
    "ScanResult",
    "ScanState",
]
