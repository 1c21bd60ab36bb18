"""Command-line runner and rendering for Northern Journey."""

from .cli import main

__all__ = ["main"]
