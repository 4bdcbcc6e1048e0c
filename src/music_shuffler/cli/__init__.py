"""Command-line interface for the music shuffler."""
