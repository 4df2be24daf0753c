"""Tests for the edit-distance fallback and its similarity floor.

A key qualifies only when distance / max(len(token), len(key)) <= 0.2.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from lore_sense.models import Entity, MatchKind
from lore_sense.resolution.fuzzy import (
    FuzzyMatcher,
    normalized_distance,
    within_similarity_floor,
)
from lore_sense.resolution.lexical_index import LexicalIndex

if TYPE_CHECKING:
    from conftest import MakeEntity


def matcher_for(*entities: Entity) -> FuzzyMatcher:
    index, _ = LexicalIndex.build((f"e#{i}", e) for i, e in enumerate(entities))
    return FuzzyMatcher(index)


class TestSimilarityFloor:
    """Exact boundary arithmetic."""

    def test_one_edit_in_three_characters_is_rejected(self) -> None:
        """卢西法 vs 路西法: 1 / 3 ≈ 0.333 > 0.2."""
        assert normalized_distance(1, "卢西法", "路西法") == pytest.approx(1 / 3)
        assert not within_similarity_floor(1, "卢西法", "路西法", 0.2)

    def test_one_edit_in_five_characters_is_the_boundary(self) -> None:
        """1 / 5 == 0.2 exactly, which qualifies."""
        assert normalized_distance(1, "satin", "satan") == 0.2
        assert within_similarity_floor(1, "satin", "satan", 0.2)

    def test_two_edits_in_five_characters_is_rejected(self) -> None:
        assert not within_similarity_floor(2, "sitin", "satan", 0.2)

    def test_longer_string_sets_the_denominator(self) -> None:
        assert normalized_distance(1, "lucifr", "lucifer") == pytest.approx(1 / 7)


class TestFuzzyLookup:
    def test_three_character_typo_not_returned(self, lucifer: Entity) -> None:
        assert matcher_for(lucifer).fuzzy_lookup("卢西法", max_edit_distance=2) == ()

    def test_five_character_typo_returned(self, make_entity: MakeEntity) -> None:
        entity = make_entity(display_name="路西法大人")
        [candidate] = matcher_for(entity).fuzzy_lookup("卢西法大人", max_edit_distance=2)
        assert candidate.match_kind is MatchKind.FUZZY
        assert candidate.matched_key == "路西法大人"
        assert candidate.raw_score == pytest.approx(0.8)

    def test_alias_typo_returned(self, lucifer: Entity) -> None:
        [candidate] = matcher_for(lucifer).fuzzy_lookup("Lucifr", max_edit_distance=2)
        assert candidate.matched_key == "lucifer"
        assert candidate.identity_id == "e#0"

    def test_max_edit_distance_caps_matches(self, make_entity: MakeEntity) -> None:
        entity = make_entity(display_name="abcdefghij")  # 10 chars: 2 edits = 0.2
        matcher = matcher_for(entity)
        assert matcher.fuzzy_lookup("abcdefghxx", max_edit_distance=2)
        assert matcher.fuzzy_lookup("abcdefghxx", max_edit_distance=1) == ()

    def test_exact_key_left_to_lexical_index(self, lucifer: Entity) -> None:
        assert matcher_for(lucifer).fuzzy_lookup("lucifer", max_edit_distance=2) == ()

    def test_never_below_similarity_floor(self, make_entity: MakeEntity) -> None:
        entities = [
            make_entity(display_name=name, namespace=f"ns:{name}")
            for name in ("ab", "abc", "abcd", "abcde", "abcdef", "abcdefg")
        ]
        matcher = matcher_for(*entities)
        for token in ("abx", "abcx", "abcdx", "xbcdef", "abxdefg", "a"):
            for candidate in matcher.fuzzy_lookup(token, max_edit_distance=2):
                assert candidate.raw_score >= 0.8 - 1e-9

    def test_ties_broken_by_length_then_lexicographic(self, make_entity: MakeEntity) -> None:
        entities = [
            make_entity(display_name=name, namespace=f"ns:{name}")
            for name in ("abcdefz", "abcdefy", "abcdexy")
        ]
        matcher = matcher_for(*entities)
        keys = [c.matched_key for c in matcher.fuzzy_lookup("abcdefg", max_edit_distance=1)]
        assert keys == ["abcdefy", "abcdefz"]

        entities = [
            make_entity(display_name=name, namespace=f"ns:{name}")
            for name in ("abcdefgh", "abcdefg", "abcdef")
        ]
        matcher = matcher_for(*entities)
        keys = [c.matched_key for c in matcher.fuzzy_lookup("abcdefgx", max_edit_distance=1)]
        assert keys == ["abcdefg", "abcdefgh"]

    def test_deterministic(self, lucifer: Entity, may_army: Entity) -> None:
        matcher = matcher_for(lucifer, may_army)
        first = matcher.fuzzy_lookup("lucifar", max_edit_distance=2)
        for _ in range(10):
            assert matcher.fuzzy_lookup("lucifar", max_edit_distance=2) == first
