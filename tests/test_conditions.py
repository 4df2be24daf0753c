"""Tests for the guard condition grammar and evaluator."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from lore_sense.models import Phase, StateContext
from lore_sense.state.conditions import (
    Always,
    And,
    Compare,
    Condition,
    MalformedExpressionError,
    Membership,
    Not,
    Or,
    ProgressRange,
    evaluate,
    parse_condition,
    parse_guard,
)


def state(**kwargs) -> StateContext:
    return StateContext(**kwargs)


class TestParseCondition:
    """Load-time parsing into the closed grammar."""

    def test_comparison(self) -> None:
        expr = parse_condition({"op": ">=", "var": "storyProgress", "value": 31})
        assert expr == Compare(op=">=", variable="storyProgress", value=31)

    def test_nested_boolean_forms(self) -> None:
        expr = parse_condition({
            "op": "and",
            "args": [
                {"not": {"flag": "betrayed"}},
                {"or": [
                    {"op": "in", "var": "currentScene", "values": ["throne", "abyss"]},
                    {"progress": [10, None]},
                ]},
            ],
        })
        assert expr == And((
            Not(Compare(op="==", variable="flags.betrayed", value=True)),
            Or((
                Membership(variable="currentScene", values=("throne", "abyss")),
                ProgressRange(low=10.0, high=None),
            )),
        ))

    def test_operator_case_insensitive_for_words(self) -> None:
        expr = parse_condition({"op": "AND", "args": [True]})
        assert expr == And((Always(),))

    def test_existing_condition_is_returned_unchanged(self) -> None:
        expr = ProgressRange(low=0.0, high=1.0)
        assert parse_condition(expr) is expr

    @pytest.mark.parametrize(
        "expr",
        [
            Compare(op="~=", variable="storyProgress", value=5),
            Condition(),
            And(()),
            Or((Always(), "storyProgress > 1")),  # type: ignore[arg-type]
            Not(Compare(op="=~", variable="currentScene", value="abyss")),
            Compare(op=">=", variable=" ", value=1),
            Compare(op="==", variable="currentScene", value=["abyss"]),  # type: ignore[arg-type]
            Membership(variable="currentScene", values=["abyss"]),  # type: ignore[arg-type]
            ProgressRange(low=30.0, high=0.0),
        ],
    )
    def test_prebuilt_condition_held_to_grammar(self, expr: Condition) -> None:
        """Hand-built trees get the same load-time check as authored data."""
        with pytest.raises(MalformedExpressionError):
            parse_condition(expr)

    def test_prebuilt_unknown_operator_fails_at_load(self) -> None:
        with pytest.raises(ValidationError):
            Phase(phase_id="x", guard=Compare(op="~=", variable="storyProgress", value=5))

    def test_prebuilt_error_reports_location(self) -> None:
        expr = And((Always(), Not(Compare(op="~=", variable="storyProgress", value=5))))
        with pytest.raises(MalformedExpressionError) as exc_info:
            parse_condition(expr)
        assert exc_info.value.path == "$[1].not"

    @pytest.mark.parametrize(
        "data",
        [
            {"op": "xor", "args": [True, True]},
            {"op": "=~", "var": "currentScene", "value": "x"},
            {"op": "and", "args": []},
            {"op": "or"},
            {"op": "not"},
            {"op": ">=", "var": "storyProgress", "value": [1, 2]},
            {"op": ">=", "var": "", "value": 1},
            {"op": "in", "var": "currentScene", "values": "throne"},
            {"op": "in", "var": "currentScene", "values": [{"nested": 1}]},
            {"progress": [30, 0]},
            {"progress": ["0", 30]},
            {"flag": ""},
            {"between": [1, 2]},
            "storyProgress >= 31",
            42,
        ],
    )
    def test_malformed_expressions_rejected(self, data: object) -> None:
        with pytest.raises(MalformedExpressionError):
            parse_condition(data)

    def test_error_reports_location(self) -> None:
        with pytest.raises(MalformedExpressionError) as exc_info:
            parse_condition({"op": "and", "args": [True, {"op": "nand", "args": [True]}]})
        assert exc_info.value.path == "$[1]"
        assert "nand" in str(exc_info.value)

    def test_malformed_guard_fails_at_load(self) -> None:
        """Bad authored data never reaches evaluation."""
        with pytest.raises(ValidationError):
            Phase(phase_id="broken", guard={"op": "~", "var": "storyProgress", "value": 1})


class TestParseGuard:
    """Guards accept bare progress ranges in addition to expressions."""

    def test_list_is_progress_range(self) -> None:
        assert parse_guard([0, 30]) == ProgressRange(low=0.0, high=30.0)

    def test_low_high_mapping(self) -> None:
        assert parse_guard({"low": 31}) == ProgressRange(low=31.0, high=None)

    def test_none_is_unconditional(self) -> None:
        assert parse_guard(None) == Always()

    def test_expression_passthrough(self) -> None:
        assert parse_guard({"flag": "awake"}) == Compare(
            op="==", variable="flags.awake", value=True
        )


class TestEvaluate:
    """Pure, total evaluation."""

    def test_progress_range_is_inclusive(self) -> None:
        guard = ProgressRange(low=0.0, high=30.0)
        assert evaluate(guard, state(story_progress=0))
        assert evaluate(guard, state(story_progress=30))
        assert not evaluate(guard, state(story_progress=30.5))
        assert not evaluate(guard, state(story_progress=-1))

    def test_open_ended_range(self) -> None:
        assert evaluate(ProgressRange(low=31.0), state(story_progress=1e9))

    def test_missing_variable_fails_every_comparison(self) -> None:
        for op in (">=", ">", "<", "<=", "==", "!="):
            expr = Compare(op=op, variable="relationships.ghost", value=0)
            assert not evaluate(expr, state()), op

    def test_missing_variable_does_not_abort_siblings(self) -> None:
        expr = parse_condition({"or": [
            {"op": ">", "var": "relationships.ghost", "value": 0},
            {"op": ">=", "var": "storyProgress", "value": 10},
        ]})
        assert evaluate(expr, state(story_progress=20))

    def test_unknown_root_variable_is_missing(self) -> None:
        expr = Compare(op="==", variable="weather", value="rain")
        assert not evaluate(expr, state())

    def test_missing_scene_fails_membership(self) -> None:
        expr = Membership(variable="currentScene", values=("throne",))
        assert not evaluate(expr, state())
        assert evaluate(expr, state(current_scene="throne"))

    def test_no_string_number_coercion(self) -> None:
        expr = Compare(op="==", variable="currentScene", value=1)
        assert not evaluate(expr, state(current_scene="1"))

    def test_bool_is_not_a_number(self) -> None:
        assert not evaluate(Compare(op="==", variable="flags.x", value=1), state(flags={"x": True}))
        assert not evaluate(Compare(op=">=", variable="flags.x", value=0), state(flags={"x": True}))
        assert evaluate(Compare(op="==", variable="flags.x", value=True), state(flags={"x": True}))

    def test_unknown_operator_never_acts_as_inequality(self) -> None:
        """An operator outside the grammar fails its leaf if it reaches evaluation."""
        expr = Compare(op="~=", variable="storyProgress", value=5)
        assert not evaluate(expr, state(story_progress=10))
        assert not evaluate(expr, state(story_progress=5))

    def test_strings_do_not_order(self) -> None:
        expr = Compare(op=">", variable="currentScene", value="a")
        assert not evaluate(expr, state(current_scene="b"))

    def test_int_and_float_compare_numerically(self) -> None:
        assert evaluate(Compare(op="==", variable="storyProgress", value=31), state(story_progress=31.0))
        assert evaluate(
            Membership(variable="relationships.michael", values=(1,)),
            state(relationships={"michael": 1.0}),
        )

    def test_nan_follows_ieee_semantics(self) -> None:
        nan_state = state(story_progress=math.nan)
        assert not evaluate(Compare(op=">=", variable="storyProgress", value=0), nan_state)
        assert not evaluate(Compare(op="<", variable="storyProgress", value=0), nan_state)
        assert not evaluate(Compare(op="==", variable="storyProgress", value=0), nan_state)
        assert evaluate(Compare(op="!=", variable="storyProgress", value=0), nan_state)
        assert not evaluate(ProgressRange(low=-math.inf), nan_state)

    def test_relationship_threshold(self) -> None:
        expr = parse_condition({"op": ">=", "var": "relationships.michael", "value": 0.5})
        assert evaluate(expr, state(relationships={"michael": 0.7}))
        assert not evaluate(expr, state(relationships={"michael": -0.7}))

    def test_not_inverts(self) -> None:
        assert evaluate(Not(Compare(op="==", variable="flags.fallen", value=True)), state())

    def test_evaluation_does_not_mutate_state(self) -> None:
        ctx = state(story_progress=5, relationships={"a": 0.1}, flags={"f": False})
        expr = parse_condition({"and": [{"flag": "f"}, {"progress": [0, 10]}]})
        evaluate(expr, ctx)
        assert ctx.story_progress == 5
        assert dict(ctx.relationships) == {"a": 0.1}
        assert dict(ctx.flags) == {"f": False}

    def test_state_mappings_are_read_only(self) -> None:
        ctx = state(flags={"f": True})
        with pytest.raises(TypeError):
            ctx.flags["f"] = False  # type: ignore[index]

    def test_snake_case_variable_names(self) -> None:
        expr = Compare(op="==", variable="current_scene", value="abyss")
        assert evaluate(expr, state(current_scene="abyss"))
