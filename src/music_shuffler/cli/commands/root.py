"""Commands for the persisted library root."""

import click
from rich.console import Console

from ...config import Config
from ...exceptions import RootInaccessible
from ...core.filesystem import check_root

console = Console()


@click.group()
def root() -> None:
    """Show or change the selected library root."""
    pass


@root.command("show")
@click.pass_obj
def show(config: Config) -> None:
    """Print the selected library root."""
    saved = config.load_library_root()
    if saved is None:
        console.print("[yellow]No library root selected[/yellow]")
        return
    console.print(str(saved))


@root.command("set")
@click.argument("path", type=click.Path(file_okay=False))
@click.pass_obj
def set_root(config: Config, path: str) -> None:
    """Select PATH as the library root."""
    try:
        resolved = check_root(path)
    except RootInaccessible as e:
        raise click.ClickException(str(e))
    config.save_library_root(resolved)
    console.print(f"[green]✓[/green] Library root set to {resolved}")
