"""Effective attribute sheet of an entity at a point in the story."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lore_sense.models.entity import Relationship


@dataclass(frozen=True)
class Sheet:
    """What an entity is at a given story progress.

    Always derived from the phase timeline on demand; never stored as the
    entity's "current state".
    """

    entity_id: str
    phase_id: str
    faction: str
    abilities: tuple[str, ...] = ()
    relationships: Mapping[str, Relationship] = field(default_factory=dict)
    forbidden_knowledge: tuple[str, ...] = ()
    is_default: bool = False
    """True when no timeline phase matched and the default phase was used."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "relationships", MappingProxyType(dict(self.relationships)))
