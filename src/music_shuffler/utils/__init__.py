"""Shared utilities."""

from .atomic import atomic_write_text
from .logging_config import configure_third_party_loggers, setup_logging

__all__ = [
    "atomic_write_text",
    "configure_third_party_loggers",
    "setup_logging",
]
