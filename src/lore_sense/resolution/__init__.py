"""Mention resolution module for LoreSense.

Pipeline: lexical index → (fuzzy fallback) → context scoring → Identity.

Submodules:
- lexical_index: prefix tree over normalized names and aliases
- fuzzy: edit-distance fallback with an ~80% similarity floor
- identity_registry: namespaced fingerprints, history, conflict reports
- disambiguator: weighted scoring with context bonus and tie reporting
- snapshot: immutable snapshot build and atomic swap
"""

from lore_sense.resolution.disambiguator import Disambiguator, resolve
from lore_sense.resolution.fuzzy import FuzzyMatcher
from lore_sense.resolution.identity_registry import (
    IdentityRegistry,
    RegistrySealedError,
    compute_fingerprint,
    detect_conflict,
)
from lore_sense.resolution.lexical_index import BuildWarning, LexicalIndex
from lore_sense.resolution.snapshot import IndexSnapshot, SnapshotHolder, build_snapshot

__all__ = [
    "BuildWarning",
    "Disambiguator",
    "FuzzyMatcher",
    "IdentityRegistry",
    "IndexSnapshot",
    "LexicalIndex",
    "RegistrySealedError",
    "SnapshotHolder",
    "build_snapshot",
    "compute_fingerprint",
    "detect_conflict",
    "resolve",
]
