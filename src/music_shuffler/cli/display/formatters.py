"""Display formatters and UI helpers for CLI."""

import logging
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...core.scanner import ScanResult
from ...models import Playlist

console = Console()
logger = logging.getLogger(__name__)

MAX_DIAGNOSTICS_SHOWN = 10


def format_duration(seconds: float) -> str:
    """Format seconds as ``H:MM:SS`` or ``M:SS``."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def scan_summary_line(result: ScanResult) -> str:
    """One-line summary of a scan, as shown after it ends."""
    if result.cancelled:
        return (
            f"scan cancelled after {result.cache_hits + result.extracted} "
            f"of {result.files_found} files"
        )
    if result.skipped:
        return f"scan completed with {result.skipped} files skipped"
    return "scan completed"


def display_scan_summary(result: ScanResult) -> None:
    """Print the one-line scan summary."""
    style = "yellow" if result.skipped or result.cancelled else "green"
    console.print(f"[{style}]{scan_summary_line(result)}[/{style}]")
    if result.cache_error:
        console.print(f"[red]✗ Cache not saved: {result.cache_error}[/red]")


def display_scan_result(result: ScanResult, show_all: bool = False) -> None:
    """Display scan statistics and skipped files.

    Args:
        result: Finished scan
        show_all: List every diagnostic instead of the first few
    """
    console.print()
    display_scan_summary(result)
    console.print()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=24)
    table.add_column("Value", style="green", justify="right")

    table.add_row("Library Root", str(result.root))
    table.add_row("Files Found", str(result.files_found))
    table.add_row("Tracks in Catalog", str(len(result.catalog)))
    table.add_row("From Cache", str(result.cache_hits))
    table.add_row("Extracted", str(result.extracted))
    if result.skipped:
        table.add_row("Skipped", f"[yellow]{result.skipped}[/yellow]")
    if result.pruned:
        table.add_row("Removed from Cache", str(result.pruned))
    total_duration = format_duration(result.catalog.total_duration_seconds)
    table.add_row("Total Duration", total_duration)
    table.add_row("Elapsed", f"{result.duration_seconds:.2f}s")
    if result.cold_start_reason:
        table.add_row("Cache", f"[yellow]rebuilt ({result.cold_start_reason})[/yellow]")

    console.print(table)

    if result.diagnostics:
        shown = result.diagnostics
        if not show_all:
            shown = shown[:MAX_DIAGNOSTICS_SHOWN]
        console.print(f"\n[yellow]⚠️  {result.skipped} file(s) skipped:[/yellow]")
        for diagnostic in shown:
            path = escape(str(diagnostic.path))
            console.print(
                f"  • [dim]{diagnostic.kind.value}[/dim] {path}: "
                f"{escape(diagnostic.message)}"
            )
        hidden = len(result.diagnostics) - len(shown)
        if hidden > 0:
            console.print(f"  ... and {hidden} more (use --verbose to list all)")

    if result.walk_warnings:
        console.print(
            f"\n[yellow]⚠️  {len(result.walk_warnings)} path(s) not walked[/yellow]"
        )
        for warning in result.walk_warnings[:MAX_DIAGNOSTICS_SHOWN]:
            console.print(f"  • {escape(str(warning.path))}: {warning.reason}")
    console.print()


def display_playlist(playlist: Playlist) -> None:
    """Display a playlist as a table."""
    if not playlist.tracks:
        console.print("[yellow]Library is empty, nothing to shuffle[/yellow]")
        return

    table = Table(
        title=f"Playlist ({playlist.track_count} tracks, "
        f"{format_duration(playlist.total_duration_seconds)})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Artist", style="green")
    table.add_column("Album")
    table.add_column("Length", justify="right")

    for position, entry in enumerate(playlist.tracks, 1):
        metadata = entry.metadata
        table.add_row(
            str(position),
            escape(metadata.title),
            escape(metadata.artist),
            escape(metadata.album),
            metadata.duration_formatted,
        )

    console.print(table)


def display_cache_info(root: Path, info: Dict[str, Any]) -> None:
    """Display statistics of the cache file of a root."""
    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Library Root", str(root))
    table.add_row("Cache File", info["path"])
    if not info["exists"]:
        table.add_row("Status", "[yellow]no cache yet[/yellow]")
        console.print(table)
        return

    table.add_row("Size", f"{info['size_bytes'] / 1024:.1f} KiB")
    if info.get("error"):
        table.add_row("Status", f"[red]unusable ({info['error']})[/red]")
    else:
        table.add_row("Entries", str(info["entries"]))
        table.add_row("Schema Version", str(info["schema_version"]))
        saved_at = info["saved_at"]
        if saved_at is not None:
            table.add_row("Saved", saved_at.strftime("%Y-%m-%d %H:%M:%S"))

    console.print(table)
