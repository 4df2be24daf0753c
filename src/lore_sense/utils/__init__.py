"""Utility modules for LoreSense."""

from lore_sense.utils.text import normalize_keyword, normalize_keywords

__all__ = [
    "normalize_keyword",
    "normalize_keywords",
]
