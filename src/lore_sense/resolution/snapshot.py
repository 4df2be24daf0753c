"""Immutable index snapshots and the holder that swaps them.

A snapshot bundles everything one resolution call reads: the lexical index,
the fuzzy matcher over its vocabulary, and the identity registry. It is built
whole from an entity sequence and never modified afterwards. When card data
changes, the loader builds a new snapshot and swaps the active reference;
calls already running keep the snapshot they started with.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from lore_sense.models.context import Context
from lore_sense.models.entity import Entity
from lore_sense.models.enums import BuildWarningKind
from lore_sense.models.identity import Identity, IdentityConflict
from lore_sense.models.results import NoActivePhase, NotFound, Resolution
from lore_sense.models.sheet import Sheet
from lore_sense.resolution.disambiguator import Disambiguator
from lore_sense.resolution.fuzzy import FuzzyMatcher
from lore_sense.resolution.identity_registry import IdentityRegistry
from lore_sense.resolution.lexical_index import BuildWarning, LexicalIndex
from lore_sense.state.phases import effective_sheet
from lore_sense.utils.text import normalize_keywords

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """One consistent, read-only view of the entity set."""

    index: LexicalIndex
    fuzzy: FuzzyMatcher
    registry: IdentityRegistry
    warnings: tuple[BuildWarning, ...] = ()
    version: int = 1
    _context_names: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @property
    def conflicts(self) -> tuple[IdentityConflict, ...]:
        return self.registry.conflicts

    def context_names(self, identity_id: str) -> frozenset[str]:
        """Normalized faction/relationship/context-key words of an identity."""
        return self._context_names.get(identity_id, frozenset())

    def identities(self) -> tuple[Identity, ...]:
        """Active identities, in registration order."""
        return self.registry.active_identities()

    def identity(self, identity_id: str) -> Identity | None:
        return self.registry.get(identity_id)

    def entity(self, entity_id: str) -> Entity | None:
        """Entity by identity id (active or retired) or by namespace."""
        entity = self.registry.entity_for(entity_id)
        if entity is None:
            current = self.registry.current(entity_id)
            if current is not None:
                entity = self.registry.entity_for(current.id)
        return entity

    def resolve(self, token: str, context: Context | None = None) -> Resolution:
        return Disambiguator().resolve(token, context, self)

    def effective_sheet(
        self,
        entity_id: str,
        story_progress: float,
        relationships: Mapping[str, float] | None = None,
        *,
        current_scene: str | None = None,
        flags: Mapping[str, bool] | None = None,
    ) -> Sheet | NoActivePhase | NotFound:
        """Effective sheet of a registered entity.

        Retired ids resolve to the entity version they were computed from,
        so historical references still produce the sheet they used to.
        """
        entity = self.entity(entity_id)
        if entity is None:
            return NotFound(token=entity_id, reason="unknown_entity")

        identity = self.registry.get(entity_id) or self.registry.current(entity_id)
        return effective_sheet(
            entity,
            story_progress,
            relationships,
            identity_id=identity.id if identity else entity_id,
            current_scene=current_scene,
            flags=flags,
        )


def build_snapshot(
    entities: Iterable[Entity],
    *,
    previous: IndexSnapshot | None = None,
    fingerprint_length: int | None = None,
) -> IndexSnapshot:
    """Build a fresh snapshot from an entity sequence.

    Pure with respect to its inputs: building twice from the same sequence
    yields snapshots that answer every query identically. Passing
    ``previous`` carries identity history forward so retired ids stay
    resolvable.

    Args:
        entities: Validated entity records, in author order.
        previous: The snapshot being replaced, if any.
        fingerprint_length: Override for the fingerprint length.

    Returns:
        The new IndexSnapshot.
    """
    if previous is not None:
        registry = IdentityRegistry.seeded_from(previous.registry)
    else:
        registry = IdentityRegistry(fingerprint_length=fingerprint_length)

    warnings: list[BuildWarning] = []
    entries: list[tuple[str, Entity]] = []
    seen_namespaces: set[str] = set()

    for entity in entities:
        if entity.namespace in seen_namespaces:
            warnings.append(BuildWarning(
                kind=BuildWarningKind.DUPLICATE_ENTITY,
                message=(
                    f"Namespace {entity.namespace!r} declared more than once; keeping the first"
                ),
                namespace=entity.namespace,
            ))
            logger.warning("Duplicate entity namespace %s skipped", entity.namespace)
            continue
        seen_namespaces.add(entity.namespace)
        identity = registry.register(entity)
        entries.append((identity.id, entity))

    registry.seal()
    index, index_warnings = LexicalIndex.build(entries)
    warnings.extend(index_warnings)

    context_names = {
        identity_id: normalize_keywords(entity.context_names())
        for identity_id, entity in entries
    }

    snapshot = IndexSnapshot(
        index=index,
        fuzzy=FuzzyMatcher(index),
        registry=registry,
        warnings=tuple(warnings),
        version=previous.version + 1 if previous is not None else 1,
        _context_names=MappingProxyType(context_names),
    )
    logger.info(
        "Built snapshot v%d: %d entities, %d keys, %d conflicts, %d warnings",
        snapshot.version,
        len(entries),
        len(index),
        len(snapshot.conflicts),
        len(warnings),
    )
    return snapshot


class SnapshotHolder:
    """Holds the active snapshot and swaps it atomically.

    Readers call ``current`` and keep the returned snapshot for the whole
    call; they never lock. Writers are serialized so two rebuilds cannot
    both start from the same previous snapshot and lose history.
    """

    def __init__(self, snapshot: IndexSnapshot | None = None) -> None:
        self._snapshot = snapshot if snapshot is not None else build_snapshot(())
        self._write_lock = threading.Lock()

    @property
    def current(self) -> IndexSnapshot:
        return self._snapshot

    def swap(self, snapshot: IndexSnapshot) -> IndexSnapshot:
        """Install a prebuilt snapshot, returning the one it replaced."""
        with self._write_lock:
            old, self._snapshot = self._snapshot, snapshot
        logger.info("Swapped snapshot v%d -> v%d", old.version, snapshot.version)
        return old

    def rebuild(self, entities: Iterable[Entity]) -> IndexSnapshot:
        """Build from ``entities`` on top of the current snapshot and swap it in."""
        with self._write_lock:
            snapshot = build_snapshot(entities, previous=self._snapshot)
            old, self._snapshot = self._snapshot, snapshot
        logger.info("Swapped snapshot v%d -> v%d", old.version, snapshot.version)
        return snapshot
