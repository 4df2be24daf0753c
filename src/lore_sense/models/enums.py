"""Enumerations for the LoreSense data model."""

from enum import Enum


class EntityKind(str, Enum):
    """What an entity stands for. Affects nothing in scoring; consumers branch on it."""

    CHARACTER = "character"  # A person/creature with a phase timeline
    FACTION = "faction"  # An organization (e.g., "黑月铁骑")
    CONCEPT = "concept"  # A non-character referent (e.g., the month "五月")


class MatchKind(str, Enum):
    """How a mention reached a candidate."""

    EXACT = "exact"  # Display name
    ALIAS = "alias"  # One of the declared aliases
    FUZZY = "fuzzy"  # Edit-distance fallback


class IdentityStatus(str, Enum):
    """Lifecycle status of an Identity."""

    ACTIVE = "active"  # Current fingerprint of the entity
    RETIRED = "retired"  # Superseded after an attribute change; still resolvable


class BuildWarningKind(str, Enum):
    """Non-fatal problems found while building a snapshot."""

    EMPTY_ALIAS = "empty_alias"  # Alias normalizes to "" and was skipped
    NAMESPACE_COLLISION = "namespace_collision"  # Key claimed twice inside one namespace
    DUPLICATE_ENTITY = "duplicate_entity"  # Same namespace registered twice in one build
