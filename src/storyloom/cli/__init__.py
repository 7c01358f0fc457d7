"""Storyloom CLI package."""

from storyloom.cli.main import app, main

__all__ = ["app", "main"]
