"""Commands for inspecting and clearing the metadata cache."""

from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...core.cache import CacheStore
from ..display import display_cache_info
from .common import resolve_root

console = Console()


@click.group()
def cache() -> None:
    """Inspect or clear the metadata cache."""
    pass


@cache.command("info")
@click.argument("library_root", required=False, type=click.Path(file_okay=False))
@click.pass_obj
def info(config: Config, library_root: Optional[str]) -> None:
    """Show the cache of LIBRARY_ROOT."""
    path = resolve_root(config, library_root)
    store = CacheStore(config.cache_directory)
    display_cache_info(path, store.info(path))


@cache.command("clear")
@click.argument("library_root", required=False, type=click.Path(file_okay=False))
@click.option("--all", "clear_all", is_flag=True, help="Remove every cache file")
@click.confirmation_option(prompt="Remove the cached metadata?")
@click.pass_obj
def clear(config: Config, library_root: Optional[str], clear_all: bool) -> None:
    """Remove the cache of LIBRARY_ROOT; the next scan starts cold."""
    store = CacheStore(config.cache_directory)
    if clear_all:
        removed = store.clear_all()
        console.print(f"[green]✓[/green] Removed {removed} cache file(s)")
        return

    path = resolve_root(config, library_root)
    if store.clear(path):
        console.print(f"[green]✓[/green] Cache cleared for {path}")
    else:
        console.print(f"[yellow]No cache found for {path}[/yellow]")
