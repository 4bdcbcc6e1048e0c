"""Helpers shared by CLI commands."""

import logging
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import click

from ...config import Config
from ...exceptions import RootInaccessible
from ...session import LibrarySession

logger = logging.getLogger(__name__)

ROOT_ARGUMENT_HELP = "Library root (defaults to the last selected one)"


def resolve_root(config: Config, root: Optional[str]) -> Path:
    """Return the root given on the command line or the persisted one."""
    if root:
        return Path(root).expanduser().resolve()
    saved = config.load_library_root()
    if saved is None:
        raise click.UsageError(
            "No library root selected. Pass ROOT or run 'music-shuffler root set'."
        )
    return saved


def open_session(config: Config, root: Optional[str]) -> LibrarySession:
    """Open a library session, remembering an explicitly given root."""
    path = resolve_root(config, root)
    try:
        return LibrarySession(path, config=config, remember_root=root is not None)
    except RootInaccessible as e:
        raise click.ClickException(str(e))


@contextmanager
def cancel_on_interrupt(session: LibrarySession) -> Iterator[None]:
    """Turn Ctrl-C into a scan cancellation while the block runs."""

    def _handler(signum: int, frame: Any) -> None:
        logger.info("Interrupt received, cancelling scan")
        session.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
