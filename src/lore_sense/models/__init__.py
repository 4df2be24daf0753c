"""Data model for LoreSense."""

from lore_sense.models.context import Context, StateContext
from lore_sense.models.enums import BuildWarningKind, EntityKind, IdentityStatus, MatchKind
from lore_sense.models.identity import Identity, IdentityConflict
from lore_sense.models.results import (
    Ambiguous,
    MatchCandidate,
    NoActivePhase,
    NotFound,
    Resolution,
    ScoredCandidate,
)
from lore_sense.models.sheet import Sheet

# Imported last: entity pulls in the condition grammar from lore_sense.state
from lore_sense.models.entity import Entity, Phase, Relationship  # noqa: E402

__all__ = [
    "Ambiguous",
    "BuildWarningKind",
    "Context",
    "Entity",
    "EntityKind",
    "Identity",
    "IdentityConflict",
    "IdentityStatus",
    "MatchCandidate",
    "MatchKind",
    "NoActivePhase",
    "NotFound",
    "Phase",
    "Relationship",
    "Resolution",
    "ScoredCandidate",
    "Sheet",
    "StateContext",
]
