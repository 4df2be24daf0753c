"""Phase state machine: an entity's effective sheet at a story progress.

States are the phases of the entity's timeline plus its optional default
phase; transitions are guard evaluations. Nothing is remembered between
calls. Every call rescans the timeline from the top, so replaying the same
progress value always reproduces the same sheet regardless of call order.

Selection rule: the FIRST phase in declared order whose guard holds wins.
Later phases never override earlier ones, however specific their guards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from lore_sense.models.context import StateContext
from lore_sense.models.results import NoActivePhase
from lore_sense.models.sheet import Sheet
from lore_sense.state.conditions import evaluate

if TYPE_CHECKING:
    from lore_sense.models.entity import Entity, Phase, Relationship

logger = logging.getLogger(__name__)


class NoActivePhaseError(LookupError):
    """Raised by require_sheet() for callers that treat NoActivePhase as fatal."""

    def __init__(self, result: NoActivePhase) -> None:
        super().__init__(
            f"No active or default phase for {result.entity_id} "
            f"at storyProgress={result.story_progress}"
        )
        self.result = result


def select_phase(phases: Sequence[Phase], state: StateContext) -> Phase | None:
    """Return the first phase whose guard holds, or None."""
    for phase in phases:
        if evaluate(phase.guard, state):
            return phase
    return None


def _clamp(value: float) -> float:
    return max(-1.0, min(1.0, value))


def _merge_relationships(
    entity: Entity,
    phase: Phase,
    accumulated: Mapping[str, float],
) -> dict[str, Relationship]:
    """Base relationships, overlaid by the phase, with live strengths applied."""
    merged = dict(entity.relationships)
    merged.update(phase.relationships)
    for target, rel in merged.items():
        if target in accumulated:
            merged[target] = rel.model_copy(
                update={"strength": _clamp(float(accumulated[target]))}
            )
    return merged


def effective_sheet(
    entity: Entity,
    story_progress: float,
    relationships: Mapping[str, float] | None = None,
    *,
    identity_id: str | None = None,
    current_scene: str | None = None,
    flags: Mapping[str, bool] | None = None,
) -> Sheet | NoActivePhase:
    """Compute the entity's effective sheet for the given narrative state.

    Phase fields left empty inherit from the entity: an empty faction or
    ability list falls back to the entity's own, and phase relationships are
    laid over the entity's. Accumulated relationship strengths then replace
    the declared strengths of matching targets.

    Args:
        entity: The entity whose timeline is scanned.
        story_progress: Scalar story position.
        relationships: Accumulated relationship strengths by target id.
        identity_id: Id to stamp on the sheet (defaults to the namespace).
        current_scene: Exposed to guards as ``currentScene``.
        flags: Exposed to guards as ``flags.<name>``.

    Returns:
        The Sheet, or NoActivePhase when neither a timeline phase nor a
        default phase applies.
    """
    accumulated = dict(relationships or {})
    state = StateContext(
        story_progress=story_progress,
        current_scene=current_scene,
        relationships=accumulated,
        flags=flags or {},
    )
    entity_id = identity_id or entity.namespace

    phase = select_phase(entity.phases, state)
    is_default = False
    if phase is None:
        if entity.default_phase is None:
            logger.debug("No active phase for %s at progress %s", entity_id, story_progress)
            return NoActivePhase(entity_id=entity_id, story_progress=story_progress)
        phase = entity.default_phase
        is_default = True

    logger.debug(
        "Phase %r selected for %s at progress %s (default=%s)",
        phase.phase_id,
        entity_id,
        story_progress,
        is_default,
    )
    return Sheet(
        entity_id=entity_id,
        phase_id=phase.phase_id,
        faction=phase.faction or entity.faction,
        abilities=phase.abilities or entity.abilities,
        relationships=_merge_relationships(entity, phase, accumulated),
        forbidden_knowledge=phase.forbidden_knowledge,
        is_default=is_default,
    )


def require_sheet(result: Sheet | NoActivePhase) -> Sheet:
    """Unwrap a sheet, raising NoActivePhaseError on NoActivePhase."""
    if isinstance(result, NoActivePhase):
        raise NoActivePhaseError(result)
    return result
