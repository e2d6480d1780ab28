"""PrincipalDirectory protocol: the issuer depends on this, not on the users collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from bson import ObjectId

from credentials.policy import Purpose


@dataclass(frozen=True)
class Principal:
    owner_id: ObjectId
    role: str
    is_active: bool
    # Purposes permanently satisfied for this owner (e.g. email already verified)
    fulfilled: frozenset[Purpose] = field(default_factory=frozenset)


class PrincipalDirectory(Protocol):
    async def resolve(self, owner_id: ObjectId) -> Optional[Principal]: ...
