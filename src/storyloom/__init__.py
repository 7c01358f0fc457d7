"""Storyloom: narrative content store with an entity-relationship import pipeline."""

__version__ = "0.1.0"
