"""Identity records produced by the identity registry."""

from __future__ import annotations

from dataclasses import dataclass

from lore_sense.models.enums import IdentityStatus


@dataclass(frozen=True)
class Identity:
    """Namespaced, fingerprinted identity of one entity version.

    ``id`` is ``namespace + "#" + fingerprint``. An attribute change yields a
    new Identity; the old one is retired but never deleted.
    """

    id: str
    namespace: str
    fingerprint: str
    display_name: str
    registration_index: int
    """Order of first registration; used for every deterministic ordering."""

    status: IdentityStatus = IdentityStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is IdentityStatus.ACTIVE


@dataclass(frozen=True)
class IdentityConflict:
    """Two distinct identities sharing a display name.

    Reported for authors to review, never resolved automatically: both
    identities stay resolvable and are told apart by namespace/context.
    """

    display_name: str
    identity_a_id: str
    identity_b_id: str
    namespace_a: str
    namespace_b: str
