"""Shared pytest fixtures for LoreSense tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest

from lore_sense.models import Entity, EntityKind
from lore_sense.resolution import IndexSnapshot, build_snapshot

# Type aliases for factory fixtures
MakeEntity = Callable[..., Entity]


@pytest.fixture
def make_entity() -> MakeEntity:
    """Factory fixture for creating Entity instances."""

    def _make(
        *,
        display_name: str = "路西法",
        source: str = "stealingstars",
        faction: str = "",
        namespace: str | None = None,
        aliases: Sequence[str] = (),
        personality: str = "",
        abilities: Sequence[str] = (),
        relationships: dict[str, Any] | None = None,
        context_keys: Sequence[str] = (),
        kind: EntityKind = EntityKind.CHARACTER,
        phases: Sequence[dict[str, Any]] = (),
        default_phase: dict[str, Any] | None = None,
    ) -> Entity:
        return Entity(
            source=source,
            display_name=display_name,
            faction=faction,
            declared_namespace=namespace,
            aliases=list(aliases),
            personality=personality,
            abilities=list(abilities),
            relationships=relationships or {},
            context_keys=list(context_keys),
            kind=kind,
            phases=list(phases),
            default_phase=default_phase,
        )

    return _make


@pytest.fixture
def lucifer(make_entity: MakeEntity) -> Entity:
    """路西法: black-moon knight until progress 30, fallen angel from 31."""
    return make_entity(
        display_name="路西法",
        faction="堕天使",
        namespace="stealingstars:fallenangels",
        aliases=["Lucifer", "晨星"],
        personality="proud",
        abilities=["光之剑"],
        relationships={"米迦勒": {"type": "rival", "strength": -0.4}},
        phases=[
            {"phase_id": "black_moon", "faction": "黑月铁骑", "guard": [0, 30]},
            {
                "phase_id": "fallen",
                "faction": "堕天使",
                "abilities": ["光之剑", "堕落之翼"],
                "guard": {"op": ">=", "var": "storyProgress", "value": 31},
            },
        ],
    )


@pytest.fixture
def may_army(make_entity: MakeEntity) -> Entity:
    """五月 the soldier of the black-moon army."""
    return make_entity(
        display_name="五月",
        source="blackmoon",
        faction="黑月铁骑",
        namespace="blackmoon:army",
        personality="loyal",
    )


@pytest.fixture
def may_month(make_entity: MakeEntity) -> Entity:
    """五月 the month: a non-character concept with no context keys."""
    return make_entity(
        display_name="五月",
        source="calendar",
        namespace="calendar:temporal",
        kind=EntityKind.CONCEPT,
    )


@pytest.fixture
def snapshot(lucifer: Entity, may_army: Entity, may_month: Entity) -> IndexSnapshot:
    return build_snapshot([lucifer, may_army, may_month])
