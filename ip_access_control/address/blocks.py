"""BlockSet: the parsed allow list.

An ordered, immutable collection of CidrBlocks with a containment test.
Order and duplicates are preserved as configured; containment never depends
on either. optimize() returns a smaller, broadest-first equivalent set for
large lists and is never needed for correctness.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterator
from dataclasses import dataclass

from ip_access_control.address.codec import Address, CidrBlock, Family, parse_list


@dataclass(frozen=True)
class BlockSet:
    """Immutable ordered sequence of CidrBlocks."""

    blocks: tuple[CidrBlock, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable of blocks; store a tuple.
        object.__setattr__(self, "blocks", tuple(self.blocks))

    @classmethod
    def of(cls, value: object) -> "BlockSet":
        """Build a BlockSet from allow-list data (see codec.parse_list)."""
        if isinstance(value, BlockSet):
            return value
        return cls(tuple(parse_list(value)))

    def contains(self, address: Address) -> bool:
        """True iff some block of the same family covers ``address``.

        An empty set contains nothing.
        """
        return any(block.contains(address) for block in self.blocks)

    def optimize(self) -> "BlockSet":
        """Return an equivalent set with duplicates, subsumed and adjacent blocks merged.

        Families are collapsed independently with ipaddress.collapse_addresses
        and the result is ordered broadest range first, so the most likely
        match is tested first.

        INVARIANT: ``self.contains(a) == self.optimize().contains(a)`` for every a.
        """
        if not self.blocks:
            return self

        collapsed: list[CidrBlock] = []
        for family in (Family.V4, Family.V6):
            networks = [block.to_network() for block in self.blocks if block.family is family]
            collapsed.extend(
                CidrBlock.from_network(network)
                for network in ipaddress.collapse_addresses(networks)
            )

        collapsed.sort(key=lambda block: block.prefix_length - block.family.bits)
        return BlockSet(tuple(collapsed))

    def __contains__(self, address: object) -> bool:
        return isinstance(address, Address) and self.contains(address)

    def __iter__(self) -> Iterator[CidrBlock]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def __bool__(self) -> bool:
        return bool(self.blocks)

    def __str__(self) -> str:
        return ",".join(str(block) for block in self.blocks)


EMPTY_BLOCK_SET = BlockSet()
