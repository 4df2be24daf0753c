"""LoreSense: keyword resolution and character-state engine."""

__version__ = "0.1.0"
