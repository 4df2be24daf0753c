"""Guard condition grammar and evaluator.

Guards decide which phase of an entity's timeline is active. They are authored
as plain JSON-like data and parsed ONCE at load time into a closed set of
node types:

    And(items)                 {"op": "and", "args": [...]}   or {"and": [...]}
    Or(items)                  {"op": "or", "args": [...]}    or {"or": [...]}
    Not(item)                  {"op": "not", "arg": {...}}    or {"not": {...}}
    Compare(op, var, value)    {"op": ">=", "var": "storyProgress", "value": 31}
    Membership(var, values)    {"op": "in", "var": "currentScene", "values": [...]}
    ProgressRange(low, high)   {"progress": [0, 30]}  (high may be null)
    Always()                   true

Shorthand: {"flag": "betrayed"} is Compare("==", "flags.betrayed", True).

Anything outside this grammar raises MalformedExpressionError while loading,
so broken authored data never reaches evaluation.

Evaluation is total and pure:
- A missing variable fails its own leaf and nothing else
- Numbers compare with IEEE-754 double semantics (NaN fails every ordering)
- No coercion: "31" is not 31, True is not 1; a type mismatch fails the leaf
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lore_sense.models.context import StateContext


class MalformedExpressionError(ValueError):
    """Raised at load time for guards outside the supported grammar."""

    def __init__(self, message: str, *, path: str = "$") -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


COMPARISON_OPERATORS = frozenset({">=", ">", "<", "<=", "==", "!="})
ORDERING_OPERATORS = frozenset({">=", ">", "<", "<="})
BOOLEAN_OPERATORS = frozenset({"and", "or", "not"})

# Accepted spellings of the built-in scalar variables
_PROGRESS_NAMES = frozenset({"storyProgress", "story_progress", "progress"})
_SCENE_NAMES = frozenset({"currentScene", "current_scene", "scene"})

Scalar = int | float | str | bool


class _Missing:
    """Sentinel for variables absent from the state context."""

    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()


class Condition:
    """Base class of every guard node."""


@dataclass(frozen=True)
class Always(Condition):
    """Guard that is always true (unconditional phase)."""

    def __str__(self) -> str:
        return "always"


@dataclass(frozen=True)
class And(Condition):
    items: tuple[Condition, ...]

    def __str__(self) -> str:
        return "(" + " and ".join(str(i) for i in self.items) + ")"


@dataclass(frozen=True)
class Or(Condition):
    items: tuple[Condition, ...]

    def __str__(self) -> str:
        return "(" + " or ".join(str(i) for i in self.items) + ")"


@dataclass(frozen=True)
class Not(Condition):
    item: Condition

    def __str__(self) -> str:
        return f"not {self.item}"


@dataclass(frozen=True)
class Compare(Condition):
    op: str
    variable: str
    value: Scalar

    def __str__(self) -> str:
        return f"{self.variable} {self.op} {self.value!r}"


@dataclass(frozen=True)
class Membership(Condition):
    variable: str
    values: tuple[Scalar, ...]

    def __str__(self) -> str:
        return f"{self.variable} in {list(self.values)!r}"


@dataclass(frozen=True)
class ProgressRange(Condition):
    """Inclusive story-progress window; ``high=None`` means open-ended."""

    low: float
    high: float | None = None

    def __str__(self) -> str:
        high = "∞" if self.high is None else self.high
        return f"storyProgress ∈ [{self.low}, {high}]"


# ─────────────────────────────────────────────────────────────────────────────
# Parsing (load time)
# ─────────────────────────────────────────────────────────────────────────────


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_scalar(value: object) -> bool:
    return isinstance(value, (int, float, str, bool))


def _parse_variable(node: Mapping[str, Any], path: str) -> str:
    variable = node.get("var")
    if not isinstance(variable, str) or not variable.strip():
        raise MalformedExpressionError("'var' must be a non-empty string", path=path)
    return variable.strip()


def _parse_items(raw: object, op: str, path: str) -> tuple[Condition, ...]:
    if not isinstance(raw, Sequence) or isinstance(raw, str) or not raw:
        raise MalformedExpressionError(
            f"'{op}' needs a non-empty list of operands", path=path
        )
    return tuple(parse_condition(item, path=f"{path}[{i}]") for i, item in enumerate(raw))


def _parse_progress_range(raw: object, path: str) -> ProgressRange:
    if isinstance(raw, Mapping):
        low, high = raw.get("low", raw.get("min")), raw.get("high", raw.get("max"))
    elif isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 2:
        low, high = raw[0], raw[1]
    else:
        raise MalformedExpressionError(
            "progress range must be [low, high] or {low, high}", path=path
        )

    if low is None:
        low = -math.inf
    if not _is_number(low) or (high is not None and not _is_number(high)):
        raise MalformedExpressionError("progress bounds must be numbers", path=path)
    if high is not None and high < low:
        raise MalformedExpressionError(
            f"progress range is empty: low={low} > high={high}", path=path
        )
    return ProgressRange(low=float(low), high=None if high is None else float(high))


def _parse_operator_node(node: Mapping[str, Any], path: str) -> Condition:
    op = node["op"]
    if not isinstance(op, str):
        raise MalformedExpressionError(f"operator must be a string, got {op!r}", path=path)
    op = op.strip()
    if op.lower() in BOOLEAN_OPERATORS | {"in"}:
        op = op.lower()

    if op in ("and", "or"):
        items = _parse_items(node.get("args"), op, path)
        return And(items) if op == "and" else Or(items)

    if op == "not":
        if "arg" not in node:
            raise MalformedExpressionError("'not' needs an 'arg' operand", path=path)
        return Not(parse_condition(node["arg"], path=f"{path}.arg"))

    if op in COMPARISON_OPERATORS:
        variable = _parse_variable(node, path)
        value = node.get("value")
        if not _is_scalar(value):
            raise MalformedExpressionError(
                f"'{op}' needs a scalar 'value', got {value!r}", path=path
            )
        return Compare(op=op, variable=variable, value=value)

    if op == "in":
        variable = _parse_variable(node, path)
        values = node.get("values", node.get("value"))
        if not isinstance(values, Sequence) or isinstance(values, str):
            raise MalformedExpressionError("'in' needs a list of 'values'", path=path)
        if not all(_is_scalar(v) for v in values):
            raise MalformedExpressionError("'in' values must be scalars", path=path)
        return Membership(variable=variable, values=tuple(values))

    raise MalformedExpressionError(f"unsupported operator {op!r}", path=path)


_NODE_TYPES = frozenset({Always, And, Or, Not, Compare, Membership, ProgressRange})


def _check_operand(item: object, path: str) -> None:
    if not isinstance(item, Condition):
        raise MalformedExpressionError(f"operand is not a condition: {item!r}", path=path)
    _check_node(item, path)


def _check_node(node: Condition, path: str) -> None:
    """Hold a prebuilt tree to the same grammar as authored data."""
    if type(node) not in _NODE_TYPES:
        raise MalformedExpressionError(
            f"unsupported condition node {type(node).__name__}", path=path
        )

    if isinstance(node, (And, Or)):
        if not isinstance(node.items, tuple) or not node.items:
            raise MalformedExpressionError("needs a non-empty tuple of operands", path=path)
        for i, item in enumerate(node.items):
            _check_operand(item, f"{path}[{i}]")
    elif isinstance(node, Not):
        _check_operand(node.item, f"{path}.not")
    elif isinstance(node, Compare):
        if node.op not in COMPARISON_OPERATORS:
            raise MalformedExpressionError(f"unsupported operator {node.op!r}", path=path)
        _parse_variable({"var": node.variable}, path)
        if not _is_scalar(node.value):
            raise MalformedExpressionError(
                f"'{node.op}' needs a scalar value, got {node.value!r}", path=path
            )
    elif isinstance(node, Membership):
        _parse_variable({"var": node.variable}, path)
        if not isinstance(node.values, tuple) or not all(_is_scalar(v) for v in node.values):
            raise MalformedExpressionError("'in' values must be a tuple of scalars", path=path)
    elif isinstance(node, ProgressRange):
        _parse_progress_range([node.low, node.high], path)


def parse_condition(data: object, *, path: str = "$") -> Condition:
    """Parse authored guard data into a Condition tree.

    Args:
        data: A Condition (checked, then returned as-is), ``True``, or a mapping in one of
            the forms listed in the module docstring.
        path: Location used in error messages.

    Raises:
        MalformedExpressionError: On unknown operators or malformed operands.
    """
    if isinstance(data, Condition):
        _check_node(data, path)
        return data
    if data is True:
        return Always()
    if not isinstance(data, Mapping):
        raise MalformedExpressionError(
            f"expected an expression object, got {type(data).__name__}", path=path
        )

    if "op" in data:
        return _parse_operator_node(data, path)

    # Single-key shorthands
    if len(data) == 1:
        (key, value), = data.items()
        if key in ("and", "or"):
            items = _parse_items(value, key, path)
            return And(items) if key == "and" else Or(items)
        if key == "not":
            return Not(parse_condition(value, path=f"{path}.not"))
        if key == "progress":
            return _parse_progress_range(value, path)
        if key == "flag":
            if not isinstance(value, str) or not value:
                raise MalformedExpressionError("'flag' needs a flag name", path=path)
            return Compare(op="==", variable=f"flags.{value}", value=True)

    raise MalformedExpressionError(
        f"unrecognised expression keys {sorted(data)!r}", path=path
    )


def parse_guard(data: object) -> Condition:
    """Parse a phase guard.

    Besides full expressions, a guard may be a bare progress range
    (``[0, 30]`` or ``{"low": 0, "high": 30}``). ``None`` means unconditional.
    """
    if data is None:
        return Always()
    if isinstance(data, Sequence) and not isinstance(data, str):
        return _parse_progress_range(data, "$")
    if isinstance(data, Mapping) and set(data) <= {"low", "high"} and data:
        return _parse_progress_range(data, "$")
    return parse_condition(data)


# ─────────────────────────────────────────────────────────────────────────────
# Evaluation (run time)
# ─────────────────────────────────────────────────────────────────────────────


def resolve_variable(name: str, state: StateContext) -> object:
    """Look up a variable, returning MISSING when the state doesn't define it."""
    if name in _PROGRESS_NAMES:
        return state.story_progress
    if name in _SCENE_NAMES:
        return MISSING if state.current_scene is None else state.current_scene

    root, _, key = name.partition(".")
    if root == "relationships" and key:
        return state.relationships.get(key, MISSING)
    if root == "flags" and key:
        return state.flags.get(key, MISSING)
    return MISSING


def _same_kind(left: object, right: object) -> bool:
    if _is_number(left) and _is_number(right):
        return True
    if isinstance(left, bool) and isinstance(right, bool):
        return True
    return isinstance(left, str) and isinstance(right, str)


def _compare(op: str, left: object, right: object) -> bool:
    if left is MISSING or not _same_kind(left, right):
        return False

    if op in ORDERING_OPERATORS:
        if not _is_number(left):
            return False
        a, b = float(left), float(right)  # type: ignore[arg-type]
        if op == ">=":
            return a >= b
        if op == ">":
            return a > b
        if op == "<=":
            return a <= b
        return a < b

    if _is_number(left):
        left, right = float(left), float(right)  # type: ignore[arg-type]
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    return False


def evaluate(expr: Condition, state: StateContext) -> bool:
    """Evaluate a parsed guard against a state context.

    Never raises for missing variables or mismatched types; those leaves are
    simply false. Does not mutate ``state``.
    """
    if isinstance(expr, Always):
        return True
    if isinstance(expr, And):
        return all(evaluate(item, state) for item in expr.items)
    if isinstance(expr, Or):
        return any(evaluate(item, state) for item in expr.items)
    if isinstance(expr, Not):
        return not evaluate(expr.item, state)
    if isinstance(expr, Compare):
        return _compare(expr.op, resolve_variable(expr.variable, state), expr.value)
    if isinstance(expr, Membership):
        left = resolve_variable(expr.variable, state)
        return any(_compare("==", left, value) for value in expr.values)
    if isinstance(expr, ProgressRange):
        progress = state.story_progress
        if not _is_number(progress) or math.isnan(progress):
            return False
        if progress < expr.low:
            return False
        return expr.high is None or progress <= expr.high
    # Only reachable with a hand-built subclass that bypassed parse_condition
    raise TypeError(f"unsupported condition node: {type(expr).__name__}")
