"""Context scoring and disambiguation of a mention.

Algorithm:
1. Gather exact/alias candidates from the lexical index. If there are none,
   or the best raw_score * weight is below the confidence floor, also gather
   fuzzy candidates.
2. Score each candidate: weight(match_kind) + context_bonus, where
   weight = {exact: 1.0, alias: 0.8, fuzzy: 0.6} and the bonus (0.2) applies
   when the context points at the candidate:
   - a surrounding token equals one of its factions (base or any phase), a
     relationship target, or one of its context keys
   - the active faction hint equals one of its factions
   - the active namespace hint is its namespace or a leading segment of it
     ("blackmoon" matches "blackmoon:army", "black" does not)
   Several hits on the same identity collapse to the best one.
3. Exactly one top scorer → its Identity.
4. Several top scorers → Ambiguous with the whole tie set. The engine never
   picks among equally-scored identities.
5. Nothing at or above the confidence floor → NotFound.

Every ordering is keyed on registration order, so identical inputs always
produce identical outputs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from lore_sense.config import settings
from lore_sense.models.context import Context
from lore_sense.models.enums import MatchKind
from lore_sense.models.results import (
    Ambiguous,
    MatchCandidate,
    NotFound,
    Resolution,
    ScoredCandidate,
)
from lore_sense.utils.text import normalize_keyword

if TYPE_CHECKING:
    from lore_sense.resolution.snapshot import IndexSnapshot

logger = logging.getLogger(__name__)

# Scores are sums of configured decimals; rounding keeps 0.6 + 0.2 equal to 0.8
_SCORE_PRECISION = 9


def namespace_matches(namespace: str, hint: str) -> bool:
    """True when ``hint`` is the namespace or a whole leading segment of it."""
    hint = hint.rstrip(":")
    return bool(hint) and (namespace == hint or namespace.startswith(hint + ":"))


class Disambiguator:
    """Ranks candidates for a mention and picks one, or reports why not.

    Usage:
        disambiguator = Disambiguator(confidence_floor=0.5)
        result = disambiguator.resolve("五月", Context.of({"黑月铁骑"}), snapshot)
    """

    def __init__(
        self,
        *,
        confidence_floor: float | None = None,
        weights: Mapping[MatchKind, float] | None = None,
        context_bonus: float | None = None,
        fuzzy_max_edit_distance: int | None = None,
    ) -> None:
        self._confidence_floor = (
            settings.confidence_floor if confidence_floor is None else confidence_floor
        )
        self._weights = {
            MatchKind.EXACT: settings.weight_exact,
            MatchKind.ALIAS: settings.weight_alias,
            MatchKind.FUZZY: settings.weight_fuzzy,
            **(weights or {}),
        }
        self._context_bonus = settings.context_bonus if context_bonus is None else context_bonus
        self._fuzzy_max_edit_distance = fuzzy_max_edit_distance

    @property
    def confidence_floor(self) -> float:
        return self._confidence_floor

    def gather(self, token: str, snapshot: IndexSnapshot) -> tuple[MatchCandidate, ...]:
        """Step 1: lexical candidates, plus fuzzy ones when those are too weak."""
        lexical = snapshot.index.lookup(token)
        best = max((c.raw_score * self._weights[c.match_kind] for c in lexical), default=None)
        if best is not None and best >= self._confidence_floor:
            return lexical

        fuzzy = snapshot.fuzzy.fuzzy_lookup(token, self._fuzzy_max_edit_distance)
        logger.debug(
            "Lexical best for %r is %s; falling back to %d fuzzy candidate(s)",
            token,
            best,
            len(fuzzy),
        )
        return lexical + fuzzy

    def context_matches(
        self,
        identity_id: str,
        context: Context,
        snapshot: IndexSnapshot,
    ) -> bool:
        entity = snapshot.registry.entity_for(identity_id)
        if entity is None:
            return False

        if context.surrounding_tokens & snapshot.context_names(identity_id):
            return True
        if context.active_faction_hint:
            hint = normalize_keyword(context.active_faction_hint)
            if any(normalize_keyword(f) == hint for f in entity.factions()):
                return True
        if context.active_namespace_hint:
            return namespace_matches(entity.namespace, context.active_namespace_hint)
        return False

    def score_candidates(
        self,
        token: str,
        context: Context,
        snapshot: IndexSnapshot,
    ) -> tuple[ScoredCandidate, ...]:
        """Step 2: all candidates scored, best first (ties in registration order)."""
        best: dict[str, ScoredCandidate] = {}
        for candidate in self.gather(token, snapshot):
            identity = snapshot.registry.get(candidate.identity_id)
            if identity is None:
                continue

            context_matched = self.context_matches(identity.id, context, snapshot)
            bonus = self._context_bonus if context_matched else 0.0
            score = round(self._weights[candidate.match_kind] + bonus, _SCORE_PRECISION)

            previous = best.get(identity.id)
            if previous is not None and previous.score >= score:
                continue
            best[identity.id] = ScoredCandidate(
                identity=identity,
                match_kind=candidate.match_kind,
                raw_score=candidate.raw_score,
                score=score,
                matched_key=candidate.matched_key,
                context_matched=context_matched,
            )

        return tuple(sorted(
            best.values(),
            key=lambda c: (-c.score, c.identity.registration_index),
        ))

    def resolve(
        self,
        token: str,
        context: Context | None,
        snapshot: IndexSnapshot,
    ) -> Resolution:
        """Resolve a mention to one Identity, Ambiguous, or NotFound."""
        context = context or Context()
        if not normalize_keyword(token):
            return NotFound(token=token, reason="empty_token")

        scored = self.score_candidates(token, context, snapshot)
        if not scored:
            logger.debug("No candidates for %r", token)
            return NotFound(token=token, reason="no_candidates")

        top = scored[0].score
        if top < self._confidence_floor:
            logger.debug(
                "Best score %.3f for %r is below floor %.3f", top, token, self._confidence_floor
            )
            return NotFound(token=token, best_score=top)

        tied = tuple(c for c in scored if c.score == top)
        if len(tied) > 1:
            logger.debug(
                "%r is ambiguous between %s",
                token,
                ", ".join(c.identity.id for c in tied),
            )
            return Ambiguous(token=token, candidates=tied)

        logger.debug("Resolved %r to %s (score %.3f)", token, tied[0].identity.id, top)
        return tied[0].identity


def resolve(
    token: str,
    context: Context | None,
    snapshot: IndexSnapshot,
) -> Resolution:
    """Resolve a mention against a snapshot with the configured defaults."""
    return Disambiguator().resolve(token, context, snapshot)
