"""Core library engine.

This package contains the scanning and sampling logic organized by concern:
- filesystem: discovery of candidate audio files
- metadata: format-aware tag and duration extraction
- cache: persistent, fingerprint-validated metadata cache
- scanner: orchestration of a full library scan
- playlist: random playlist sampling
"""

__all__: list[str] = []
