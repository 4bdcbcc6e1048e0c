"""Playlist module."""

from .sampler import PlaylistSampler

__all__ = ["PlaylistSampler"]
