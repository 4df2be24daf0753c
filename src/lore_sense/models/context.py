"""Caller-supplied inputs: mention context and narrative state."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from lore_sense.utils.text import normalize_keywords


@dataclass(frozen=True)
class Context:
    """Surroundings of a mention, used for the context bonus.

    Tokens are normalized on construction so that scoring compares like with
    like (the same normalization the lexical index uses).
    """

    surrounding_tokens: frozenset[str] = frozenset()
    active_namespace_hint: str | None = None
    active_faction_hint: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "surrounding_tokens", normalize_keywords(self.surrounding_tokens)
        )

    @classmethod
    def of(
        cls,
        tokens: Iterable[str] = (),
        *,
        namespace: str | None = None,
        faction: str | None = None,
    ) -> Context:
        """Shorthand constructor accepting any iterable of tokens."""
        return cls(
            surrounding_tokens=frozenset(tokens),
            active_namespace_hint=namespace,
            active_faction_hint=faction,
        )


def _frozen_mapping(value: Mapping[str, object] | None) -> Mapping[str, object]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class StateContext:
    """Narrative variables a condition expression is evaluated against.

    Variables visible to expressions:
    - storyProgress (number)
    - currentScene (string, missing when None)
    - relationships.<entityId> (number in [-1, 1])
    - flags.<name> (boolean)

    The mappings are wrapped read-only; evaluation must never mutate them.
    """

    story_progress: float = 0.0
    current_scene: str | None = None
    relationships: Mapping[str, float] = field(default_factory=dict)
    flags: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "relationships", _frozen_mapping(self.relationships))
        object.__setattr__(self, "flags", _frozen_mapping(self.flags))
