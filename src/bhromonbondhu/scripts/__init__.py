"""Command-line maintenance helpers."""
