"""Configuration management for the music shuffler application."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .utils.atomic import atomic_write_text

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    # Fallback to project root .env
    load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PLAYLIST_SIZE = 50
# Upper bound on extraction threads
MAX_WORKER_CAP = 8

LIBRARY_ROOT_FILE = "library_root.txt"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Base directory for settings and caches
        self.home_directory = Path(
            os.getenv(
                "MUSIC_SHUFFLER_HOME",
                str(Path.home() / ".music-shuffler"),
            )
        )
        self.cache_directory = Path(
            os.getenv(
                "MUSIC_SHUFFLER_CACHE_DIR",
                str(self.home_directory / "cache"),
            )
        )

        # Playlist settings
        self.playlist_size = int(
            os.getenv("MUSIC_SHUFFLER_PLAYLIST_SIZE", str(DEFAULT_PLAYLIST_SIZE))
        )

        # Scanner settings
        default_workers = min(os.cpu_count() or 4, MAX_WORKER_CAP)
        self.max_workers = max(
            1, int(os.getenv("MUSIC_SHUFFLER_MAX_WORKERS", str(default_workers)))
        )
        self.file_timeout = float(os.getenv("MUSIC_SHUFFLER_FILE_TIMEOUT", "30"))
        self.follow_symlinks = _env_bool("MUSIC_SHUFFLER_FOLLOW_SYMLINKS", True)
        self.save_interval = int(os.getenv("MUSIC_SHUFFLER_SAVE_INTERVAL", "0"))

        # Ensure directories exist
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.home_directory.mkdir(parents=True, exist_ok=True)
        self.cache_directory.mkdir(parents=True, exist_ok=True)

    @property
    def library_root_file(self) -> Path:
        """File remembering the last selected library root."""
        return self.home_directory / LIBRARY_ROOT_FILE

    def load_library_root(self) -> Optional[Path]:
        """Return the persisted library root, or None if none was saved."""
        try:
            contents = self.library_root_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read library root setting: %s", e)
            return None
        return Path(contents) if contents else None

    def save_library_root(self, root: Path) -> None:
        """Persist the selected library root for later sessions."""
        resolved = Path(root).expanduser().resolve()
        atomic_write_text(self.library_root_file, str(resolved))
        logger.debug("Saved library root: %s", resolved)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
