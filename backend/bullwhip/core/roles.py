"""Supply chain roles and their fixed adjacency."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from .exceptions import UnknownRole


class Role(str, Enum):
    SUPPLIER = "supplier"
    MANUFACTURER = "manufacturer"
    WHOLESALER = "wholesaler"
    DISTRIBUTOR = "distributor"
    RETAILER = "retailer"

    @property
    def label(self) -> str:
        return self.value.title()

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        """Resolve a role from an enum member or a case-insensitive name."""

        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownRole(value) from None


#: Material flows from index 0 (supplier) toward the last index (retailer).
CHAIN: List[Role] = [
    Role.SUPPLIER,
    Role.MANUFACTURER,
    Role.WHOLESALER,
    Role.DISTRIBUTOR,
    Role.RETAILER,
]

#: Rounds are processed downstream first so that every upstream role sees the
#: order its downstream partner finalized earlier in the same round.
PROCESSING_ORDER: List[Role] = list(reversed(CHAIN))

_INDEX: Dict[Role, int] = {role: idx for idx, role in enumerate(CHAIN)}

DOWNSTREAM: Dict[Role, Optional[Role]] = {
    role: CHAIN[idx + 1] if idx + 1 < len(CHAIN) else None for role, idx in _INDEX.items()
}
UPSTREAM: Dict[Role, Optional[Role]] = {
    role: CHAIN[idx - 1] if idx > 0 else None for role, idx in _INDEX.items()
}


def chain_index(role: Role | str) -> int:
    return _INDEX[Role.parse(role)]


def downstream_of(role: Role | str) -> Optional[Role]:
    return DOWNSTREAM[Role.parse(role)]


def upstream_of(role: Role | str) -> Optional[Role]:
    return UPSTREAM[Role.parse(role)]


def chain_distance(upstream: Role | str, downstream: Role | str) -> int:
    """Number of hops from ``upstream`` to ``downstream`` (negative if reversed)."""

    return chain_index(downstream) - chain_index(upstream)
