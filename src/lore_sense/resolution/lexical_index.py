"""Prefix-tree index over normalized names and aliases.

Each key (a normalized display name or alias) maps to the identities that
declare it. Lookup walks one node per character, so cost is O(len(token))
whatever the vocabulary size.

The tree is built whole and then left alone. A changed entity set gets a
brand-new index; there is no incremental insert a reader could observe
halfway through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lore_sense.models.enums import BuildWarningKind, MatchKind
from lore_sense.models.results import MatchCandidate
from lore_sense.utils.text import normalize_keyword

if TYPE_CHECKING:
    from lore_sense.models.entity import Entity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildWarning:
    """A non-fatal problem recorded while building an index snapshot."""

    kind: BuildWarningKind
    message: str
    namespace: str
    key: str | None = None


@dataclass(frozen=True)
class IndexRef:
    """One identity reachable from a key."""

    identity_id: str
    match_kind: MatchKind
    order: int
    """Position of the owning entity in the build input."""


class _Node:
    __slots__ = ("children", "refs")

    def __init__(self) -> None:
        self.children: dict[str, _Node] = {}
        self.refs: tuple[IndexRef, ...] = ()


class LexicalIndex:
    """Immutable (after build) prefix tree of keyword → identity refs.

    Usage:
        index, warnings = LexicalIndex.build([(identity.id, entity), ...])
        candidates = index.lookup("路西法")
    """

    def __init__(self, root: _Node, keys: tuple[str, ...]) -> None:
        self._root = root
        self._keys = keys

    @classmethod
    def build(
        cls,
        entries: Iterable[tuple[str, Entity]],
    ) -> tuple[LexicalIndex, list[BuildWarning]]:
        """Build an index from (identity_id, entity) pairs.

        - Empty aliases are skipped with an EMPTY_ALIAS warning
        - Inside one namespace a key belongs to the first entity that claims
          it; later claims are skipped with a NAMESPACE_COLLISION warning
        - Across namespaces a key may point at many identities

        Returns:
            Tuple of (index, warnings).
        """
        root = _Node()
        keys: list[str] = []
        warnings: list[BuildWarning] = []
        owners: dict[tuple[str, str], str] = {}

        for order, (identity_id, entity) in enumerate(entries):
            namespace = entity.namespace
            declared = [(entity.display_name, MatchKind.EXACT)]
            declared.extend((alias, MatchKind.ALIAS) for alias in entity.aliases)

            for raw, kind in declared:
                key = normalize_keyword(raw)
                if not key:
                    warnings.append(BuildWarning(
                        kind=BuildWarningKind.EMPTY_ALIAS,
                        message=f"Skipping empty alias {raw!r} of {entity.display_name!r}",
                        namespace=namespace,
                    ))
                    logger.warning("Skipping empty alias %r in %s", raw, namespace)
                    continue

                owner = owners.get((namespace, key))
                if owner is not None and owner != identity_id:
                    warnings.append(BuildWarning(
                        kind=BuildWarningKind.NAMESPACE_COLLISION,
                        message=f"Key {key!r} already belongs to {owner} in {namespace}",
                        namespace=namespace,
                        key=key,
                    ))
                    logger.warning(
                        "Key %r claimed twice in namespace %s; keeping %s",
                        key,
                        namespace,
                        owner,
                    )
                    continue
                owners[(namespace, key)] = identity_id

                node = root
                for ch in key:
                    node = node.children.setdefault(ch, _Node())

                existing = next((r for r in node.refs if r.identity_id == identity_id), None)
                if existing is not None:
                    # Name doubling as its own alias: the exact hit is kept
                    continue
                if not node.refs:
                    keys.append(key)
                node.refs = (*node.refs, IndexRef(identity_id, kind, order))

        logger.debug("Built lexical index: %d keys, %d warnings", len(keys), len(warnings))
        return cls(root, tuple(keys)), warnings

    def _find(self, key: str) -> _Node | None:
        node = self._root
        for ch in key:
            next_node = node.children.get(ch)
            if next_node is None:
                return None
            node = next_node
        return node

    def lookup(self, token: str) -> tuple[MatchCandidate, ...]:
        """Exact/alias hits for a token, in build order."""
        key = normalize_keyword(token)
        if not key:
            return ()
        node = self._find(key)
        if node is None:
            return ()
        return tuple(
            MatchCandidate(
                identity_id=ref.identity_id,
                match_kind=ref.match_kind,
                raw_score=1.0,
                matched_key=key,
            )
            for ref in node.refs
        )

    def refs(self, key: str) -> tuple[IndexRef, ...]:
        """Refs stored under an already-normalized key."""
        node = self._find(key)
        return node.refs if node is not None else ()

    def complete(self, prefix: str, limit: int = 10) -> list[str]:
        """Keys starting with ``prefix``, shortest first, then lexicographic."""
        key = normalize_keyword(prefix)
        start = self._find(key) if key else None
        if start is None:
            return []

        found: list[str] = []
        stack: list[tuple[str, _Node]] = [(key, start)]
        while stack:
            text, node = stack.pop()
            if node.refs:
                found.append(text)
            stack.extend((text + ch, child) for ch, child in node.children.items())

        found.sort(key=lambda k: (len(k), k))
        return found[:limit]

    def vocabulary(self) -> tuple[str, ...]:
        """All keys, in the order they were first indexed."""
        return self._keys

    def __len__(self) -> int:
        return len(self._keys)
