"""Address and CIDR parsing for ip_access_control.

Every address that reaches the decision engine is normalized here into a
fixed-width integer tagged with its family:

  Address    — V4 (32-bit) or V6 (128-bit) big-endian integer
  CidrBlock  — family + network + prefix length; network never has bits set
               beyond the prefix

Public functions:
  parse_address()  — strict textual IPv4 / IPv6 -> Address
  parse_cidr()     — "address" or "address/prefix" -> CidrBlock
  encode()         — host-native structured address -> Address
  parse_list()     — allow-list configuration data -> list[CidrBlock]

Textual parsing is delegated to the standard library ``ipaddress`` module;
this module owns the integer form, prefix validation and list flattening.
All functions are pure and raise InvalidAddressError / InvalidCidrError.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ip_access_control.errors import InvalidAddressError, InvalidCidrError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


# ─── Family ───────────────────────────────────────────────────────────────────


class Family(Enum):
    """Address family. The value is the IP version number."""

    V4 = 4
    V6 = 6

    @property
    def bits(self) -> int:
        return 32 if self is Family.V4 else 128

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1


def mask(family: Family, prefix_length: int) -> int:
    """Return the network mask for ``prefix_length`` leading one-bits."""
    host_bits = family.bits - prefix_length
    return family.max_value ^ ((1 << host_bits) - 1)


# ─── Address / CidrBlock ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Address:
    """A single IPv4 or IPv6 address as a big-endian integer."""

    family: Family
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= self.family.max_value:
            raise InvalidAddressError(self.value, f"out of range for {self.family.name}")

    def to_ipaddress(self) -> IPAddress:
        if self.family is Family.V4:
            return ipaddress.IPv4Address(self.value)
        return ipaddress.IPv6Address(self.value)

    def __str__(self) -> str:
        return str(self.to_ipaddress())


@dataclass(frozen=True)
class CidrBlock:
    """A contiguous address range: ``network/prefix_length``.

    INVARIANT: ``network & ~mask == 0``. Use from_address() to build a block
    from an arbitrary address; the constructor rejects set host bits.
    A bare address is a block with a full-length prefix (/32 or /128).
    """

    family: Family
    network: int
    prefix_length: int

    def __post_init__(self) -> None:
        bits = self.family.bits
        if isinstance(self.prefix_length, bool) or not isinstance(self.prefix_length, int):
            raise InvalidCidrError(self.prefix_length, "prefix length must be an integer")
        if not 0 <= self.prefix_length <= bits:
            raise InvalidCidrError(
                self.prefix_length,
                f"prefix length out of range 0..{bits} for {self.family.name}",
            )
        if not 0 <= self.network <= self.family.max_value:
            raise InvalidCidrError(self.network, f"network out of range for {self.family.name}")
        if self.network & ~self.mask:
            raise InvalidCidrError(self.network, "network has bits set beyond the prefix")

    @classmethod
    def from_address(cls, address: Address, prefix_length: Optional[int] = None) -> "CidrBlock":
        """Build the block of ``prefix_length`` containing ``address``.

        Without a prefix length the block matches the address exactly.
        """
        family = address.family
        if prefix_length is None:
            prefix_length = family.bits
        if isinstance(prefix_length, bool) or not isinstance(prefix_length, int):
            raise InvalidCidrError(prefix_length, "prefix length must be an integer")
        if not 0 <= prefix_length <= family.bits:
            raise InvalidCidrError(
                f"{address}/{prefix_length}",
                f"prefix length out of range 0..{family.bits} for {family.name}",
            )
        return cls(family, address.value & mask(family, prefix_length), prefix_length)

    @classmethod
    def from_network(cls, network: IPNetwork) -> "CidrBlock":
        family = Family(network.version)
        return cls(family, int(network.network_address), network.prefixlen)

    @property
    def mask(self) -> int:
        return mask(self.family, self.prefix_length)

    def contains(self, address: Address) -> bool:
        """True if ``address`` is in this block. Families never cross-match."""
        return address.family is self.family and (address.value & self.mask) == self.network

    def to_network(self) -> IPNetwork:
        if self.family is Family.V4:
            return ipaddress.IPv4Network((self.network, self.prefix_length))
        return ipaddress.IPv6Network((self.network, self.prefix_length))

    def __str__(self) -> str:
        return f"{Address(self.family, self.network)}/{self.prefix_length}"


# ─── Parsing ──────────────────────────────────────────────────────────────────


def _from_ipaddress(parsed: IPAddress) -> Address:
    return Address(Family(parsed.version), int(parsed))


def parse_address(text: object) -> Address:
    """Parse a textual IPv4 dotted quad or IPv6 colon-hex address.

    Raises:
        InvalidAddressError: ``text`` is not a string or not a valid address.
    """
    if not isinstance(text, str):
        raise InvalidAddressError(text, "expected a string")
    try:
        parsed = ipaddress.ip_address(text)
    except ValueError:
        raise InvalidAddressError(text) from None
    return _from_ipaddress(parsed)


def parse_cidr(text: object) -> CidrBlock:
    """Parse ``address`` or ``address/prefix`` into a CidrBlock.

    The prefix is checked against the family of the address part (0..32 for
    IPv4, 0..128 for IPv6). Host bits below the prefix are masked off, so
    ``10.0.0.7/24`` parses as ``10.0.0.0/24``.

    Raises:
        InvalidCidrError: bad address part, bad or out-of-range prefix, or
                          a non-string value.
    """
    if not isinstance(text, str):
        raise InvalidCidrError(text, "expected a string")

    address_part, separator, prefix_part = text.partition("/")
    try:
        address = parse_address(address_part)
    except InvalidAddressError:
        raise InvalidCidrError(text, "invalid address part") from None

    if not separator:
        return CidrBlock.from_address(address)

    if not (prefix_part.isascii() and prefix_part.isdigit()):
        raise InvalidCidrError(text, "prefix length must be a decimal integer")

    prefix_length = int(prefix_part)
    if prefix_length > address.family.bits:
        raise InvalidCidrError(
            text,
            f"prefix length {prefix_length} out of range 0..{address.family.bits} "
            f"for {address.family.name}",
        )
    return CidrBlock.from_address(address, prefix_length)


# Tuple length -> (family, bits per component)
_NATIVE_LAYOUTS: dict[int, tuple[Family, int]] = {
    4: (Family.V4, 8),     # (10, 0, 0, 1)
    8: (Family.V6, 16),    # (0x2001, 0xdb8, 0, 0, 0, 0, 0, 1)
    16: (Family.V6, 8),    # sixteen octets
}


def _is_native_tuple(value: object) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) in _NATIVE_LAYOUTS
        and all(isinstance(part, int) and not isinstance(part, bool) for part in value)
    )


def encode(native: object) -> Address:
    """Encode a host-native structured address into an Address.

    Accepted forms:
      - Address (returned unchanged)
      - ipaddress.IPv4Address / ipaddress.IPv6Address
      - tuple or list of 4 octets, 8 hextets or 16 octets
      - packed bytes of length 4 or 16

    Strings are not native forms; use parse_address() for text.

    Raises:
        InvalidAddressError: unsupported type, wrong length or a component
                             out of range.
    """
    if isinstance(native, Address):
        return native

    if isinstance(native, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return _from_ipaddress(native)

    if isinstance(native, (bytes, bytearray)):
        if len(native) == 4:
            return Address(Family.V4, int.from_bytes(native, "big"))
        if len(native) == 16:
            return Address(Family.V6, int.from_bytes(native, "big"))
        raise InvalidAddressError(native, "packed address must be 4 or 16 bytes")

    if isinstance(native, (tuple, list)):
        layout = _NATIVE_LAYOUTS.get(len(native))
        if layout is None:
            raise InvalidAddressError(native, "expected 4, 8 or 16 components")
        family, part_bits = layout
        value = 0
        for part in native:
            if isinstance(part, bool) or not isinstance(part, int):
                raise InvalidAddressError(native, "components must be integers")
            if not 0 <= part < (1 << part_bits):
                raise InvalidAddressError(native, f"component {part} out of range")
            value = (value << part_bits) | part
        return Address(family, value)

    raise InvalidAddressError(native, "unsupported address representation")


def _pair_to_block(pair: tuple) -> CidrBlock:
    """``(address, prefix)`` -> CidrBlock; address may be text or native."""
    raw_address, prefix_length = pair
    try:
        if isinstance(raw_address, str):
            address = parse_address(raw_address)
        else:
            address = encode(raw_address)
    except InvalidAddressError:
        raise InvalidCidrError(pair, "invalid address part") from None
    return CidrBlock.from_address(address, prefix_length)


def _iter_blocks(value: object) -> Iterator[CidrBlock]:
    if isinstance(value, str):
        for entry in value.split(","):
            entry = entry.strip()
            if entry:
                yield parse_cidr(entry)
    elif isinstance(value, CidrBlock):
        yield value
    elif isinstance(value, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        yield CidrBlock.from_network(value)
    elif isinstance(value, (Address, ipaddress.IPv4Address, ipaddress.IPv6Address, bytes, bytearray)):
        try:
            yield CidrBlock.from_address(encode(value))
        except InvalidAddressError as exc:
            raise InvalidCidrError(value, exc.message) from None
    elif _is_native_tuple(value):
        try:
            yield CidrBlock.from_address(encode(value))
        except InvalidAddressError as exc:
            raise InvalidCidrError(value, exc.message) from None
    elif (
        isinstance(value, tuple)
        and len(value) == 2
        and isinstance(value[1], int)
        and not isinstance(value[1], bool)
        and not isinstance(value[0], int)
    ):
        yield _pair_to_block(value)
    elif isinstance(value, Iterable) and not isinstance(value, Mapping):
        for item in value:
            yield from _iter_blocks(item)
    else:
        raise InvalidCidrError(value, "unsupported allow-list entry")


def parse_list(value: object) -> list[CidrBlock]:
    """Parse allow-list configuration data into an ordered list of blocks.

    ``value`` is either a single comma-delimited string or a (possibly nested)
    sequence whose items are strings (themselves comma-delimited), CidrBlocks,
    ipaddress objects, native address tuples or ``(address, prefix)`` pairs.
    Entries are trimmed and empty entries skipped. Nested sequences are
    flattened in order; duplicates are kept.

    The first invalid entry aborts the whole parse: a partial list is never
    returned.

    Raises:
        InvalidCidrError: for ``None`` or any invalid entry.
    """
    if value is None:
        raise InvalidCidrError(value, "expected a string or a sequence of entries")
    return list(_iter_blocks(value))
