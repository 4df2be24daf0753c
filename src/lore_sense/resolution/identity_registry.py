"""Identity registry: namespaced, fingerprinted identities with history.

An identity id is ``namespace + "#" + fingerprint`` where the fingerprint is a
truncated SHA-256 over the entity's canonical attributes.

Rules:
- Same namespace, same fingerprint → the same Identity (idempotent)
- Same namespace, new fingerprint → new Identity; the previous one is
  RETIRED but stays resolvable (append-only history, nothing is deleted)
- Different namespace, different fingerprint, equal display name →
  IdentityConflict is reported; both identities keep resolving
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from lore_sense.config import settings
from lore_sense.models.enums import IdentityStatus
from lore_sense.models.identity import Identity, IdentityConflict
from lore_sense.utils.text import normalize_keyword

if TYPE_CHECKING:
    from lore_sense.models.entity import Entity

logger = logging.getLogger(__name__)


class RegistrySealedError(RuntimeError):
    """Raised when registering into a registry that a snapshot already published."""


def compute_fingerprint(entity: Entity, length: int | None = None) -> str:
    """Content hash of the entity's canonical attributes.

    The JSON encoding keeps non-ASCII text as-is so the hash does not depend
    on escaping choices.
    """
    payload = json.dumps(
        entity.canonical_attributes,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return digest[: length or settings.fingerprint_length]


def detect_conflict(a: Identity, b: Identity) -> bool:
    """True iff a and b share a display name but differ in namespace and content."""
    return (
        a.namespace != b.namespace
        and a.fingerprint != b.fingerprint
        and normalize_keyword(a.display_name) == normalize_keyword(b.display_name)
    )


class IdentityRegistry:
    """Assigns identities to entities and keeps their history.

    A registry is filled while a snapshot is being built and sealed when the
    snapshot is published; registering after that raises RegistrySealedError. The next build starts from ``seeded_from()``
    so retired ids keep resolving across rebuilds.
    """

    def __init__(self, *, fingerprint_length: int | None = None) -> None:
        self._fingerprint_length = fingerprint_length or settings.fingerprint_length
        self._identities: dict[str, Identity] = {}
        self._entities: dict[str, Entity] = {}
        self._current: dict[str, str] = {}  # namespace -> active identity id
        self._history: dict[str, list[str]] = {}  # namespace -> ids, oldest first
        self._conflicts: list[IdentityConflict] = []
        self._next_index = 0
        self._sealed = False

    @classmethod
    def seeded_from(cls, previous: IdentityRegistry) -> IdentityRegistry:
        """Start a new registry that remembers every identity of ``previous``.

        All carried-over identities begin RETIRED; registering an entity whose
        content is unchanged reactivates its old identity, with its original
        registration index. Conflicts are recomputed for the new build.
        """
        registry = cls(fingerprint_length=previous._fingerprint_length)
        registry._identities = {
            identity_id: replace(identity, status=IdentityStatus.RETIRED)
            for identity_id, identity in previous._identities.items()
        }
        registry._entities = dict(previous._entities)
        registry._history = {ns: list(ids) for ns, ids in previous._history.items()}
        registry._next_index = previous._next_index
        return registry

    def register(self, entity: Entity) -> Identity:
        """Register an entity and return its (possibly existing) identity."""
        if self._sealed:
            raise RegistrySealedError(
                f"Cannot register {entity.namespace!r}: registry belongs to a published snapshot"
            )
        namespace = entity.namespace
        fingerprint = compute_fingerprint(entity, self._fingerprint_length)
        identity_id = f"{namespace}#{fingerprint}"

        current_id = self._current.get(namespace)
        if current_id == identity_id:
            return self._identities[identity_id]

        if current_id is not None:
            self._identities[current_id] = replace(
                self._identities[current_id], status=IdentityStatus.RETIRED
            )
            logger.info("Retired identity %s (superseded by %s)", current_id, identity_id)

        known = self._identities.get(identity_id)
        if known is not None:
            identity = replace(known, status=IdentityStatus.ACTIVE)
        else:
            identity = Identity(
                id=identity_id,
                namespace=namespace,
                fingerprint=fingerprint,
                display_name=entity.display_name,
                registration_index=self._next_index,
            )
            self._next_index += 1
            self._history.setdefault(namespace, []).append(identity_id)

        self._identities[identity_id] = identity
        self._entities[identity_id] = entity
        self._current[namespace] = identity_id

        for other in self.resolve_conflicts(entity.display_name):
            if other.id != identity_id and detect_conflict(other, identity):
                self._conflicts.append(IdentityConflict(
                    display_name=entity.display_name,
                    identity_a_id=other.id,
                    identity_b_id=identity_id,
                    namespace_a=other.namespace,
                    namespace_b=namespace,
                ))
                logger.warning(
                    "Identity conflict on %r: %s vs %s (kept separate)",
                    entity.display_name,
                    other.id,
                    identity_id,
                )
        return identity

    def seal(self) -> None:
        """Refuse further registrations; called once the snapshot is published."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def resolve_conflicts(self, display_name: str) -> tuple[Identity, ...]:
        """Active identities with this display name, in registration order."""
        key = normalize_keyword(display_name)
        matches = [
            identity
            for identity in self._identities.values()
            if identity.is_active and normalize_keyword(identity.display_name) == key
        ]
        return tuple(sorted(matches, key=lambda i: i.registration_index))

    def get(self, identity_id: str) -> Identity | None:
        """Any identity ever registered, active or retired."""
        return self._identities.get(identity_id)

    def entity_for(self, identity_id: str) -> Entity | None:
        """The entity version an identity was computed from."""
        return self._entities.get(identity_id)

    def current(self, namespace: str) -> Identity | None:
        identity_id = self._current.get(namespace)
        return self._identities[identity_id] if identity_id else None

    def history(self, namespace: str) -> tuple[Identity, ...]:
        """Every identity the namespace has had, oldest first."""
        return tuple(self._identities[i] for i in self._history.get(namespace, ()))

    def active_identities(self) -> tuple[Identity, ...]:
        active = [i for i in self._identities.values() if i.is_active]
        return tuple(sorted(active, key=lambda i: i.registration_index))

    @property
    def conflicts(self) -> tuple[IdentityConflict, ...]:
        return tuple(self._conflicts)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._identities

    def __len__(self) -> int:
        return len(self._identities)
