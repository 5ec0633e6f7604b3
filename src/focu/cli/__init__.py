"""Command-line interface for focu."""

from .app import app, main

__all__ = ["app", "main"]
