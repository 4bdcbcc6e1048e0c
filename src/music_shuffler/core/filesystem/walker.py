"""Directory traversal for music library scanning."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from ...exceptions import RootInaccessible
from ...models import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkWarning:
    """A directory that was skipped during traversal."""

    path: Path
    reason: str


def check_root(root: Path) -> Path:
    """Validate that a library root can be listed.

    Args:
        root: Library root directory

    Returns:
        The absolute, resolved root path

    Raises:
        RootInaccessible: If the root does not exist, is not a directory or
            cannot be listed
    """
    root = Path(root).expanduser()
    if not root.exists():
        raise RootInaccessible(f"Library root does not exist: {root}")
    if not root.is_dir():
        raise RootInaccessible(f"Library root is not a directory: {root}")
    try:
        with os.scandir(root) as entries:
            next(entries, None)
    except OSError as e:
        raise RootInaccessible(f"Library root cannot be read: {root} ({e})") from e
    return root.resolve()


class PathWalker:
    """Enumerates candidate audio files under a library root.

    Traversal depth is unlimited and order is unspecified. Each call to
    :meth:`walk` starts a fresh traversal, so a walker can be reused.
    """

    def __init__(
        self,
        supported_extensions: Optional[Iterable[str]] = None,
        follow_symlinks: bool = True,
    ) -> None:
        """Initialize path walker.

        Args:
            supported_extensions: Extensions to accept (with leading dot)
            follow_symlinks: Whether to descend into symlinked directories
        """
        self.supported_extensions = frozenset(
            ext.lower() for ext in (supported_extensions or SUPPORTED_EXTENSIONS)
        )
        self.follow_symlinks = follow_symlinks

    def is_candidate(self, path: Path) -> bool:
        """Check if a file has a supported extension (case-insensitive)."""
        return path.suffix.lower() in self.supported_extensions

    def walk(
        self, root: Path, warnings: Optional[List[WalkWarning]] = None
    ) -> Iterator[Path]:
        """Lazily yield candidate file paths under ``root``.

        Unreadable subdirectories and symlink loops are skipped; each skip is
        logged and appended to ``warnings`` when a list is given.

        Args:
            root: Library root directory
            warnings: Optional list collecting skipped directories

        Yields:
            Absolute paths of files with a supported extension

        Raises:
            RootInaccessible: If the root itself cannot be listed
        """
        root = check_root(root)
        visited: Set[Tuple[int, int]] = set()

        def record(path: Path, reason: str) -> None:
            logger.warning("Skipping directory %s: %s", path, reason)
            if warnings is not None:
                warnings.append(WalkWarning(path=path, reason=reason))

        def on_error(error: OSError) -> None:
            record(Path(error.filename or root), error.strerror or str(error))

        root_key = self._dir_key(root)
        if root_key:
            visited.add(root_key)

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=on_error, followlinks=self.follow_symlinks
        ):
            current = Path(dirpath)

            if self.follow_symlinks:
                # Prune directories already seen through another link
                kept = []
                for name in dirnames:
                    key = self._dir_key(current / name)
                    if key is None:
                        record(current / name, "cannot stat directory")
                        continue
                    if key in visited:
                        record(current / name, "symlink loop or duplicate link")
                        continue
                    visited.add(key)
                    kept.append(name)
                dirnames[:] = kept

            for filename in filenames:
                file_path = current / filename
                if self.is_candidate(file_path):
                    yield file_path

    @staticmethod
    def _dir_key(path: Path) -> Optional[Tuple[int, int]]:
        try:
            stat_result = os.stat(path)
        except OSError:
            return None
        return stat_result.st_dev, stat_result.st_ino
