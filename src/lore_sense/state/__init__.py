"""Character-state module: guard conditions and the phase state machine.

Submodules:
- conditions: closed expression grammar, load-time parsing, pure evaluation
- phases: first-active-phase selection producing an effective Sheet
"""

from lore_sense.state.conditions import (
    Condition,
    MalformedExpressionError,
    evaluate,
    parse_condition,
    parse_guard,
)
from lore_sense.state.phases import NoActivePhaseError, effective_sheet, require_sheet

__all__ = [
    "Condition",
    "MalformedExpressionError",
    "NoActivePhaseError",
    "effective_sheet",
    "evaluate",
    "parse_condition",
    "parse_guard",
    "require_sheet",
]
