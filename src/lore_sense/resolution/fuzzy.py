"""Edit-distance fallback over the index vocabulary.

Used only when exact/alias lookup comes back empty or too weak. A vocabulary
key qualifies when BOTH hold:

    distance <= max_edit_distance
    distance / max(len(token), len(key)) <= max_normalized_distance   (0.2)

The second rule is the ~80% similarity floor. It makes short names strict:
one wrong character in a 3-character name is 33% off and never qualifies,
while a 5-character name tolerates exactly one.

Levenshtein distance uses unit costs for substitution, insertion and
deletion (rapidfuzz's default weights).
"""

from __future__ import annotations

import logging

from rapidfuzz.distance import Levenshtein

from lore_sense.config import settings
from lore_sense.models.enums import MatchKind
from lore_sense.models.results import MatchCandidate
from lore_sense.resolution.lexical_index import LexicalIndex
from lore_sense.utils.text import normalize_keyword

logger = logging.getLogger(__name__)

# Float slack so that e.g. 1/5 compares as exactly 0.2
_EPSILON = 1e-9


def normalized_distance(distance: int, token: str, key: str) -> float:
    """distance / max(len(token), len(key)); 0.0 for two empty strings."""
    longest = max(len(token), len(key))
    return distance / longest if longest else 0.0


def within_similarity_floor(
    distance: int,
    token: str,
    key: str,
    max_normalized_distance: float,
) -> bool:
    return normalized_distance(distance, token, key) <= max_normalized_distance + _EPSILON


class FuzzyMatcher:
    """Deterministic near-miss search over a lexical index's vocabulary.

    Usage:
        matcher = FuzzyMatcher(index)
        candidates = matcher.fuzzy_lookup("lucifr", max_edit_distance=2)
    """

    def __init__(
        self,
        index: LexicalIndex,
        *,
        max_normalized_distance: float | None = None,
    ) -> None:
        self._index = index
        self._vocabulary = index.vocabulary()
        self._max_normalized_distance = (
            settings.fuzzy_max_normalized_distance
            if max_normalized_distance is None
            else max_normalized_distance
        )

    def fuzzy_lookup(
        self,
        token: str,
        max_edit_distance: int | None = None,
    ) -> tuple[MatchCandidate, ...]:
        """Find vocabulary keys within the edit-distance and similarity limits.

        Exact hits (distance 0) are left to the lexical index.

        Returns:
            Candidates ordered by distance, then shorter key, then
            lexicographic key, then build order of the owning entity.
        """
        key = normalize_keyword(token)
        if not key:
            return ()
        if max_edit_distance is None:
            max_edit_distance = settings.fuzzy_max_edit_distance

        hits: list[tuple[int, str]] = []
        for candidate in self._vocabulary:
            if abs(len(candidate) - len(key)) > max_edit_distance:
                continue
            distance = Levenshtein.distance(key, candidate, score_cutoff=max_edit_distance)
            if distance == 0 or distance > max_edit_distance:
                continue
            if not within_similarity_floor(
                distance, key, candidate, self._max_normalized_distance
            ):
                continue
            hits.append((distance, candidate))

        hits.sort(key=lambda hit: (hit[0], len(hit[1]), hit[1]))

        results: list[MatchCandidate] = []
        for distance, candidate in hits:
            raw_score = 1.0 - normalized_distance(distance, key, candidate)
            for ref in self._index.refs(candidate):
                results.append(MatchCandidate(
                    identity_id=ref.identity_id,
                    match_kind=MatchKind.FUZZY,
                    raw_score=raw_score,
                    matched_key=candidate,
                ))

        logger.debug("Fuzzy lookup %r: %d candidate(s)", key, len(results))
        return tuple(results)
