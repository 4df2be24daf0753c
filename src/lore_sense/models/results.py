"""Transient per-call result types.

Resolution failures are ordinary outcomes (ambiguous mentions are common), so
they are returned as values rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass

from lore_sense.models.enums import MatchKind
from lore_sense.models.identity import Identity


@dataclass(frozen=True)
class MatchCandidate:
    """A raw index hit. Produced per lookup, never persisted."""

    identity_id: str
    match_kind: MatchKind
    raw_score: float
    """1.0 for exact/alias hits, 1 - normalized edit distance for fuzzy hits."""

    matched_key: str
    """The normalized vocabulary key that was hit."""


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate after context scoring."""

    identity: Identity
    match_kind: MatchKind
    raw_score: float
    score: float
    """weight(match_kind) + context bonus."""

    matched_key: str
    context_matched: bool = False


@dataclass(frozen=True)
class Ambiguous:
    """Several differently-identified entities tie at the top score.

    The full tie set is reported; picking one is the caller's decision.
    """

    token: str
    candidates: tuple[ScoredCandidate, ...]

    @property
    def identities(self) -> tuple[Identity, ...]:
        return tuple(c.identity for c in self.candidates)


@dataclass(frozen=True)
class NotFound:
    """Nothing cleared the confidence floor (or the id is unknown)."""

    token: str
    best_score: float | None = None
    reason: str = "below_confidence_floor"


@dataclass(frozen=True)
class NoActivePhase:
    """No phase guard matched and the entity declares no default phase.

    A data-authoring defect: the engine will not invent a phase.
    """

    entity_id: str
    story_progress: float


Resolution = Identity | Ambiguous | NotFound
