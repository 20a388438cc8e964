"""Unit tests for ip_access_control/address/codec.py.

Covers:
  - parse_address(): strict IPv4 / IPv6 text, rejection of everything else
  - parse_cidr(): default full-length prefix, per-family prefix validation,
    host-bit masking, malformed syntax
  - encode(): native tuples, packed bytes, ipaddress objects
  - parse_list(): comma-delimited strings, nesting, order, duplicates,
    all-or-nothing failure
"""

from __future__ import annotations

import ipaddress

import pytest

from ip_access_control.address.codec import (
    Address,
    CidrBlock,
    Family,
    encode,
    mask,
    parse_address,
    parse_cidr,
    parse_list,
)
from ip_access_control.errors import InvalidAddressError, InvalidCidrError

# ─── Helpers ──────────────────────────────────────────────────────────────────


def _v4(text: str) -> int:
    return int(ipaddress.IPv4Address(text))


def _v6(text: str) -> int:
    return int(ipaddress.IPv6Address(text))


# ─── mask ─────────────────────────────────────────────────────────────────────


class TestMask:
    def test_zero_prefix_is_empty_mask(self) -> None:
        assert mask(Family.V4, 0) == 0
        assert mask(Family.V6, 0) == 0

    def test_full_prefix_is_all_ones(self) -> None:
        assert mask(Family.V4, 32) == 0xFFFFFFFF
        assert mask(Family.V6, 128) == (1 << 128) - 1

    def test_v4_slash_24(self) -> None:
        assert mask(Family.V4, 24) == 0xFFFFFF00


# ─── parse_address ────────────────────────────────────────────────────────────


class TestParseAddress:
    def test_ipv4(self) -> None:
        assert parse_address("1.2.3.4") == Address(Family.V4, 16_909_060)

    def test_ipv6(self) -> None:
        address = parse_address("1:2:3::4")
        assert address.family is Family.V6
        assert address.value == 5_192_455_318_486_633_616_049_570_941_239_300

    def test_ipv6_loopback(self) -> None:
        assert parse_address("::1") == Address(Family.V6, 1)

    @pytest.mark.parametrize(
        "text",
        ["", "1 2 3 4", "1.2.3", "1.2.3.256", "10.0.0.0/24", "not-an-ip", " 1.2.3.4", "1:2:3:::4"],
    )
    def test_invalid_text_raises(self, text: str) -> None:
        with pytest.raises(InvalidAddressError):
            parse_address(text)

    @pytest.mark.parametrize("value", [None, 2_130_706_433, b"\x7f\x00\x00\x01", (127, 0, 0, 1)])
    def test_non_string_raises(self, value: object) -> None:
        with pytest.raises(InvalidAddressError):
            parse_address(value)

    def test_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_address("bogus")

    def test_str_round_trips_text(self) -> None:
        assert str(parse_address("10.0.0.1")) == "10.0.0.1"
        assert str(parse_address("2001:db8::1")) == "2001:db8::1"


# ─── parse_cidr ───────────────────────────────────────────────────────────────


class TestParseCidr:
    def test_bare_v4_address_is_host_block(self) -> None:
        block = parse_cidr("10.0.0.0")
        assert block == CidrBlock(Family.V4, _v4("10.0.0.0"), 32)

    def test_bare_v6_address_is_host_block(self) -> None:
        block = parse_cidr("1:2:3::4")
        assert block.family is Family.V6
        assert block.prefix_length == 128

    def test_v4_cidr(self) -> None:
        block = parse_cidr("10.0.0.0/24")
        assert block == CidrBlock(Family.V4, _v4("10.0.0.0"), 24)

    def test_v6_cidr(self) -> None:
        block = parse_cidr("2001:db8::/32")
        assert block == CidrBlock(Family.V6, _v6("2001:db8::"), 32)

    def test_host_bits_are_masked(self) -> None:
        assert parse_cidr("10.0.0.7/24") == parse_cidr("10.0.0.0/24")

    def test_zero_prefix(self) -> None:
        assert parse_cidr("1.2.3.4/0") == CidrBlock(Family.V4, 0, 0)

    def test_v4_prefix_33_rejected(self) -> None:
        with pytest.raises(InvalidCidrError):
            parse_cidr("10.0.0.0/33")

    def test_v6_prefix_128_accepted(self) -> None:
        assert parse_cidr("::1/128").prefix_length == 128

    def test_v6_prefix_129_rejected(self) -> None:
        with pytest.raises(InvalidCidrError):
            parse_cidr("::1/129")

    def test_prefix_validated_against_address_family(self) -> None:
        # 64 is fine for IPv6 but out of range for IPv4
        assert parse_cidr("2001:db8::/64").prefix_length == 64
        with pytest.raises(InvalidCidrError):
            parse_cidr("10.0.0.0/64")

    @pytest.mark.parametrize(
        "text",
        ["10.0.0.0/", "10.0.0.0/x", "10.0.0.0/-1", "10.0.0.0/24/8", "/24", "10.0.0/24", "10.0.0.0/ 24"],
    )
    def test_malformed_rejected(self, text: str) -> None:
        with pytest.raises(InvalidCidrError):
            parse_cidr(text)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidCidrError):
            parse_cidr(167772160)

    def test_str(self) -> None:
        assert str(parse_cidr("10.0.0.9/8")) == "10.0.0.0/8"
        assert str(parse_cidr("::1")) == "::1/128"


# ─── CidrBlock ────────────────────────────────────────────────────────────────


class TestCidrBlock:
    def test_constructor_rejects_host_bits(self) -> None:
        with pytest.raises(InvalidCidrError):
            CidrBlock(Family.V4, _v4("10.0.0.1"), 24)

    def test_constructor_rejects_out_of_range_prefix(self) -> None:
        with pytest.raises(InvalidCidrError):
            CidrBlock(Family.V4, 0, 33)

    def test_from_address_masks(self) -> None:
        block = CidrBlock.from_address(parse_address("192.168.1.77"), 16)
        assert str(block) == "192.168.0.0/16"

    def test_from_address_rejects_bad_prefix(self) -> None:
        with pytest.raises(InvalidCidrError):
            CidrBlock.from_address(parse_address("192.168.1.77"), 40)

    def test_contains_same_family_only(self) -> None:
        everything_v4 = parse_cidr("0.0.0.0/0")
        assert everything_v4.contains(parse_address("8.8.8.8"))
        assert not everything_v4.contains(parse_address("::1"))

    def test_frozen(self) -> None:
        block = parse_cidr("10.0.0.0/8")
        with pytest.raises(AttributeError):
            block.prefix_length = 16  # type: ignore[misc]


# ─── encode ───────────────────────────────────────────────────────────────────


class TestEncode:
    def test_v4_tuple(self) -> None:
        assert encode((1, 2, 3, 4)) == parse_address("1.2.3.4")

    def test_v6_hextet_tuple(self) -> None:
        assert encode((1, 2, 3, 0, 0, 0, 0, 4)) == parse_address("1:2:3::4")

    def test_v6_octet_tuple(self) -> None:
        octets = tuple(ipaddress.IPv6Address("2001:db8::1").packed)
        assert encode(octets) == parse_address("2001:db8::1")

    def test_packed_bytes(self) -> None:
        assert encode(b"\x0a\x00\x00\x01") == parse_address("10.0.0.1")
        assert encode(ipaddress.IPv6Address("::1").packed) == parse_address("::1")

    def test_ipaddress_objects(self) -> None:
        assert encode(ipaddress.ip_address("10.0.0.1")) == parse_address("10.0.0.1")
        assert encode(ipaddress.ip_address("::1")) == parse_address("::1")

    def test_address_passes_through(self) -> None:
        address = parse_address("10.0.0.1")
        assert encode(address) is address

    def test_list_accepted(self) -> None:
        assert encode([127, 0, 0, 1]) == parse_address("127.0.0.1")

    @pytest.mark.parametrize(
        "value",
        [
            (1, 2, 3),
            (256, 0, 0, 1),
            (-1, 0, 0, 1),
            (1, 2, 3, 0x10000, 0, 0, 0, 4),
            ("1", "2", "3", "4"),
            (True, 0, 0, 1),
            b"\x01\x02\x03",
            "1.2.3.4",
            16_909_060,
            None,
        ],
    )
    def test_malformed_native_raises(self, value: object) -> None:
        with pytest.raises(InvalidAddressError):
            encode(value)


# ─── parse_list ───────────────────────────────────────────────────────────────


class TestParseList:
    def test_list_of_strings_keeps_order(self) -> None:
        blocks = parse_list(["1.2.3.4", "1:2:3::4"])
        assert blocks == [parse_cidr("1.2.3.4"), parse_cidr("1:2:3::4")]

    def test_comma_delimited_string(self) -> None:
        blocks = parse_list("1.1.1.0/31,1.1.0.0/24")
        assert [str(b) for b in blocks] == ["1.1.1.0/31", "1.1.0.0/24"]

    def test_entries_are_trimmed(self) -> None:
        blocks = parse_list("  10.0.0.0/8 ,\t::1  ")
        assert [str(b) for b in blocks] == ["10.0.0.0/8", "::1/128"]

    def test_empty_entries_skipped(self) -> None:
        assert [str(b) for b in parse_list("10.0.0.0/8,, ,::1")] == ["10.0.0.0/8", "::1/128"]

    def test_empty_inputs(self) -> None:
        assert parse_list([]) == []
        assert parse_list("") == []

    def test_nested_sequences_flattened_in_order(self) -> None:
        blocks = parse_list(["10.0.0.1", ["10.0.0.2", ("10.0.0.3", "10.0.0.4")], "10.0.0.5"])
        assert [str(b) for b in blocks] == [
            "10.0.0.1/32",
            "10.0.0.2/32",
            "10.0.0.3/32",
            "10.0.0.4/32",
            "10.0.0.5/32",
        ]

    def test_comma_strings_inside_list_are_split(self) -> None:
        blocks = parse_list(["10.0.0.1, 10.0.0.2", "10.0.0.3"])
        assert len(blocks) == 3

    def test_duplicates_preserved(self) -> None:
        blocks = parse_list(["10.0.0.1", "10.0.0.1"])
        assert len(blocks) == 2

    def test_native_tuple_entry(self) -> None:
        assert parse_list([(10, 0, 0, 1)]) == [parse_cidr("10.0.0.1")]

    def test_address_prefix_pair(self) -> None:
        assert parse_list([("10.0.0.0", 8)]) == [parse_cidr("10.0.0.0/8")]
        assert parse_list([((10, 1, 2, 3), 16)]) == [parse_cidr("10.1.0.0/16")]

    def test_ipaddress_objects(self) -> None:
        blocks = parse_list([ipaddress.ip_network("10.0.0.0/8"), ipaddress.ip_address("::1")])
        assert blocks == [parse_cidr("10.0.0.0/8"), parse_cidr("::1")]

    def test_blocks_pass_through(self) -> None:
        block = parse_cidr("10.0.0.0/8")
        assert parse_list([block])[0] is block

    def test_one_bad_entry_fails_whole_list(self) -> None:
        with pytest.raises(InvalidCidrError) as exc_info:
            parse_list(["10.0.0.0/8", "10.0.0.0/99", "::1"])
        assert "10.0.0.0/99" in str(exc_info.value)

    def test_bad_entry_in_delimited_string(self) -> None:
        with pytest.raises(InvalidCidrError):
            parse_list("10.0.0.0/8, nope")

    @pytest.mark.parametrize("value", [None, 42, [42], [{"cidr": "10.0.0.0/8"}], [None]])
    def test_unsupported_values(self, value: object) -> None:
        with pytest.raises(InvalidCidrError):
            parse_list(value)
