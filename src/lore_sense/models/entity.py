"""Entity records: the author-declared subjects the engine resolves.

These are pydantic models because they are the boundary with card data
coming from outside the core. Validation happens once, on load; guards are
parsed into Condition trees here so malformed expressions fail before any
resolution runs.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

from lore_sense.models.enums import EntityKind
from lore_sense.state.conditions import Always, Condition, parse_guard


def _as_tuple(v: Any) -> Any:
    """Accept a lone string where a list of strings is expected."""
    if isinstance(v, str):
        return (v,)
    return v


StrTuple = Annotated[tuple[str, ...], BeforeValidator(_as_tuple)]


class Relationship(BaseModel):
    """A directed relationship towards another entity."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="acquaintance", description="e.g., 'ally', 'enemy', 'mentor'")
    strength: float = Field(default=0.0, ge=-1.0, le=1.0)
    name: str | None = Field(
        default=None,
        description="Display name of the target when the key is an identity id",
    )


class Phase(BaseModel):
    """One row of an entity's evolution timeline."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    phase_id: str = Field(validation_alias=AliasChoices("phase_id", "phaseId", "id"))
    faction: str = ""
    abilities: StrTuple = ()
    relationships: dict[str, Relationship] = Field(default_factory=dict)
    forbidden_knowledge: StrTuple = Field(
        default=(),
        validation_alias=AliasChoices("forbidden_knowledge", "forbiddenKnowledge"),
    )
    guard: Annotated[Condition, BeforeValidator(parse_guard)] = Field(default_factory=Always)
    """Parsed guard; a bare [low, high] is a progress range, null is unconditional."""


class Entity(BaseModel):
    """A character (or faction/concept) with aliases and a phase timeline.

    ``namespace`` is ``source:faction:display_name`` unless declared
    explicitly. Entities sharing a display name across namespaces are
    distinct and are never merged.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = "default"
    display_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("display_name", "displayName", "name"),
    )
    aliases: StrTuple = ()
    faction: str = ""
    personality: str = ""
    abilities: StrTuple = ()
    relationships: dict[str, Relationship] = Field(default_factory=dict)
    context_keys: StrTuple = Field(
        default=(),
        validation_alias=AliasChoices("context_keys", "contextKeys", "secondary_keys"),
    )
    """Secondary keywords that earn the context bonus but are not indexed as names."""

    kind: EntityKind = EntityKind.CHARACTER
    phases: tuple[Phase, ...] = ()
    default_phase: Phase | None = Field(
        default=None,
        validation_alias=AliasChoices("default_phase", "defaultPhase", "origin"),
    )
    declared_namespace: str | None = Field(
        default=None,
        validation_alias=AliasChoices("declared_namespace", "namespace"),
    )

    @property
    def namespace(self) -> str:
        if self.declared_namespace:
            return self.declared_namespace
        return f"{self.source}:{self.faction}:{self.display_name}"

    @property
    def canonical_attributes(self) -> tuple[Any, ...]:
        """(personality, abilities, relationships, faction) in a stable form.

        This is what the fingerprint hashes. Aliases and phases are not
        identity-bearing: renaming an alias does not make a new character.
        """
        relationships = tuple(
            (target, rel.type, rel.strength)
            for target, rel in sorted(self.relationships.items())
        )
        return (
            self.personality,
            tuple(sorted(self.abilities)),
            relationships,
            self.faction,
        )

    def lifecycle_phases(self) -> tuple[Phase, ...]:
        """Timeline phases followed by the default phase, if any."""
        if self.default_phase is None:
            return self.phases
        return (*self.phases, self.default_phase)

    def factions(self) -> tuple[str, ...]:
        """Every faction the entity belongs to at some point of its lifecycle."""
        names = [self.faction, *(phase.faction for phase in self.lifecycle_phases())]
        return tuple(dict.fromkeys(n for n in names if n))

    def context_names(self) -> tuple[str, ...]:
        """Words that, seen near a mention, point at this entity.

        Resolution does not know the story progress, so factions and
        relationships from every phase count, not just the current one.
        """
        names = [*self.factions(), *self.context_keys]
        relationships = [self.relationships, *(p.relationships for p in self.lifecycle_phases())]
        for mapping in relationships:
            for target, rel in mapping.items():
                names.append(target)
                if rel.name:
                    names.append(rel.name)
        return tuple(dict.fromkeys(n for n in names if n))
