"""CLI display and formatting utilities."""

from .formatters import (
    display_cache_info,
    display_playlist,
    display_scan_result,
    display_scan_summary,
    format_duration,
    scan_summary_line,
)
from .progress import ScanProgressReporter

__all__ = [
    "ScanProgressReporter",
    "display_cache_info",
    "display_playlist",
    "display_scan_result",
    "display_scan_summary",
    "format_duration",
    "scan_summary_line",
]
