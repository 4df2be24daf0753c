"""Keyword normalization shared by indexing and lookup.

The same function must run on both sides of the index, otherwise a key stored
under one spelling can never be found again.

Rules:
- Unicode case-fold (not just lower(): "Straße" and "STRASSE" meet)
- Drop control (Cc) and format (Cf) characters, which covers zero-width
  space/joiners and the BOM that leak in from copy-pasted card text
- Collapse runs of whitespace to a single space, strip the ends
- Everything else is kept as-is. No NFKC, no transliteration: logographic
  names such as "路西法" must survive byte-for-byte.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

_STRIPPED_CATEGORIES = frozenset({"Cc", "Cf"})
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_keyword(text: str) -> str:
    """Normalize a name, alias, or mention for index keys.

    Examples:
        "Lucifer" -> "lucifer"
        "  Black   Moon " -> "black moon"
        "路\u200b西法" -> "路西法"
    """
    # Whitespace controls (\t, \n) become spaces before the category filter
    text = _WHITESPACE_RUN.sub(" ", text)
    text = "".join(
        ch for ch in text if unicodedata.category(ch) not in _STRIPPED_CATEGORIES
    )
    text = text.casefold()
    return _WHITESPACE_RUN.sub(" ", text).strip()


def normalize_keywords(texts: Iterable[str]) -> frozenset[str]:
    """Normalize a collection of words, dropping the ones that normalize to nothing."""
    return frozenset(n for n in (normalize_keyword(t) for t in texts) if n)
