"""Shuffle command: scan a library and print a random playlist."""

import logging
import random
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...exceptions import ScanFailed
from ..display import ScanProgressReporter, display_playlist, display_scan_summary
from .common import cancel_on_interrupt, open_session

console = Console()
logger = logging.getLogger(__name__)


@click.command("shuffle")
@click.argument("library_root", required=False, type=click.Path(file_okay=False))
@click.option(
    "--count", "-n", type=click.IntRange(min=1), help="Number of tracks to pick"
)
@click.option("--seed", type=int, help="Seed for a reproducible playlist")
@click.option(
    "--progress/--no-progress", default=True, help="Show a progress bar while scanning"
)
@click.option("--paths", is_flag=True, help="Print only file paths, one per line")
@click.pass_obj
def shuffle_command(
    config: Config,
    library_root: Optional[str],
    count: Optional[int],
    seed: Optional[int],
    progress: bool,
    paths: bool,
) -> None:
    """Build a random playlist from LIBRARY_ROOT."""
    with open_session(config, library_root) as session:
        try:
            with cancel_on_interrupt(session):
                if progress and not paths:
                    with ScanProgressReporter(console) as reporter:
                        result = session.scan(progress_callback=reporter)
                else:
                    result = session.scan()
        except ScanFailed as e:
            logger.error("Scan failed: %s", e)
            raise click.ClickException(str(e))

        if result.cancelled:
            console.print("[yellow]Scan cancelled[/yellow]")
            raise click.Abort()

        rng = random.Random(seed) if seed is not None else None
        playlist = session.shuffle(count=count, rng=rng)

        if paths:
            for entry in playlist.tracks:
                click.echo(str(entry.path))
            return

        display_scan_summary(result)
        display_playlist(playlist)
