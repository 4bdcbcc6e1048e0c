"""Scan command: build or refresh the catalog of a library root."""

import json
import logging
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...exceptions import ScanFailed
from ..display import ScanProgressReporter, display_scan_result
from .common import cancel_on_interrupt, open_session

console = Console()
logger = logging.getLogger(__name__)


@click.command("scan")
@click.argument("library_root", required=False, type=click.Path(file_okay=False))
@click.option("--workers", type=click.IntRange(min=1), help="Extraction threads")
@click.option(
    "--progress/--no-progress", default=True, help="Show a progress bar while scanning"
)
@click.option("--verbose", "-v", is_flag=True, help="List every skipped file")
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON")
@click.pass_obj
def scan_command(
    config: Config,
    library_root: Optional[str],
    workers: Optional[int],
    progress: bool,
    verbose: bool,
    as_json: bool,
) -> None:
    """Scan LIBRARY_ROOT and update its metadata cache.

    Unchanged files are served from the cache. Press Ctrl-C to cancel; the
    cache keeps everything extracted so far.
    """
    with open_session(config, library_root) as session:
        if workers:
            session.scanner.max_workers = workers

        try:
            with cancel_on_interrupt(session):
                if progress and not as_json:
                    with ScanProgressReporter(console) as reporter:
                        result = session.scan(progress_callback=reporter)
                else:
                    result = session.scan()
        except ScanFailed as e:
            logger.error("Scan failed: %s", e)
            raise click.ClickException(str(e))

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
        else:
            display_scan_result(result, show_all=verbose)
        if result.cancelled:
            raise click.Abort()
