"""Tests for loading entity records from JSON card data."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from lore_sense.loader import load_entities
from lore_sense.models import EntityKind
from lore_sense.state.conditions import Always, ProgressRange

LUCIFER_CARD = {
    "displayName": "路西法",
    "source": "stealingstars",
    "namespace": "stealingstars:fallenangels",
    "faction": "堕天使",
    "aliases": ["Lucifer", "晨星"],
    "contextKeys": "天界",
    "relationships": {"米迦勒": {"type": "rival", "strength": -0.4}},
    "phases": [
        {"phaseId": "black_moon", "faction": "黑月铁骑", "guard": [0, 30]},
        {
            "phaseId": "fallen",
            "faction": "堕天使",
            "forbiddenKnowledge": ["天界的秘密"],
            "guard": {"op": ">=", "var": "storyProgress", "value": 31},
        },
    ],
    "defaultPhase": {"id": "origin", "faction": "天使"},
}


class TestLoadEntities:
    def test_list_of_records(self) -> None:
        [entity] = load_entities([LUCIFER_CARD])
        assert entity.display_name == "路西法"
        assert entity.namespace == "stealingstars:fallenangels"
        assert entity.context_keys == ("天界",)
        assert entity.phases[0].guard == ProgressRange(low=0.0, high=30.0)
        assert entity.phases[1].forbidden_knowledge == ("天界的秘密",)
        assert entity.default_phase is not None
        assert entity.default_phase.phase_id == "origin"
        assert entity.default_phase.guard == Always()

    def test_entities_wrapper(self) -> None:
        entities = load_entities({
            "version": 3,
            "entities": [LUCIFER_CARD, {"name": "五月", "kind": "concept", "source": "calendar"}],
        })
        assert [e.display_name for e in entities] == ["路西法", "五月"]
        assert entities[1].kind is EntityKind.CONCEPT
        assert entities[1].namespace == "calendar::五月"

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([LUCIFER_CARD], ensure_ascii=False), encoding="utf-8")
        [entity] = load_entities(path)
        assert entity.aliases == ("Lucifer", "晨星")
        assert load_entities(str(path)) == [entity]

    def test_malformed_guard_fails_whole_load(self) -> None:
        broken = {"name": "坏", "phases": [{"id": "x", "guard": {"op": "xor", "args": []}}]}
        with pytest.raises(ValidationError):
            load_entities([LUCIFER_CARD, broken])

    def test_missing_display_name(self) -> None:
        with pytest.raises(ValidationError):
            load_entities([{"aliases": ["nameless"]}])

    def test_strength_out_of_range(self) -> None:
        card = {"name": "x", "relationships": {"y": {"strength": 2}}}
        with pytest.raises(ValidationError):
            load_entities([card])

    def test_invalid_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_entities(path)
