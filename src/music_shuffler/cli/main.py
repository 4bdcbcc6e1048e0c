"""Command-line interface for the music shuffler application.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any

import click

from ..config import Config
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import cache, root, scan_command, shuffle_command


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.version_option(package_name="music-shuffler")
@click.pass_context
def cli(ctx: Any, log_level: str, log_file: str) -> None:
    """Music Shuffler.

    Scans a local music library and builds random playlists from it.
    """
    # Set up logging
    setup_logging(log_level=log_level, log_file=Path(log_file) if log_file else None)
    configure_third_party_loggers()

    ctx.obj = Config()


# Register command groups and commands
cli.add_command(scan_command)
cli.add_command(shuffle_command)
cli.add_command(root)
cli.add_command(cache)


if __name__ == "__main__":
    cli()
