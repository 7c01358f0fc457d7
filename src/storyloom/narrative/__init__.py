"""Narrative queries over imported stories."""

from storyloom.narrative.queries import NarrativeQueries

__all__ = ["NarrativeQueries"]
