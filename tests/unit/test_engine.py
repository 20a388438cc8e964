"""Unit tests for ip_access_control/engine.py — allowed() and address normalization."""

from __future__ import annotations

import ipaddress
from types import SimpleNamespace

import pytest
from starlette.requests import Request

from ip_access_control.address.blocks import EMPTY_BLOCK_SET, BlockSet
from ip_access_control.address.codec import parse_address
from ip_access_control.engine import allowed, normalize_remote_ip
from ip_access_control.errors import InvalidCidrError
from ip_access_control.options.resolver import pack, unpack

ALLOW_CASES = [
    pytest.param("10.0.0.0", ["10.0.0.0"], ["10.0.0.1"], id="bare-address"),
    pytest.param("10.0.0.0/32", ["10.0.0.0"], ["10.0.0.1"], id="slash-32"),
    pytest.param(
        "10.0.0.0/24",
        ["10.0.0.0", "10.0.0.127", "10.0.0.255"],
        ["10.0.1.0"],
        id="slash-24",
    ),
    pytest.param(
        "2001:db8::/64",
        ["2001:db8::", "2001:db8::ffff:ffff:ffff:ffff"],
        ["2001:db8:0:1::", "10.0.0.1"],
        id="v6-slash-64",
    ),
]


def _native(text: str) -> tuple[int, ...]:
    """Octet tuple for ``text``, the form an ASGI server might hand over."""
    return tuple(ipaddress.ip_address(text).packed)


def _request(client: tuple[str, int] | None) -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": [], "client": client})


# ─── Degenerate inputs ────────────────────────────────────────────────────────


class TestAllowedDegenerate:
    def test_empty_allow_list(self) -> None:
        assert not allowed("1", [])

    def test_none_allow_list(self) -> None:
        assert not allowed("1", None)

    def test_empty_allow_list_with_valid_address(self) -> None:
        assert not allowed("10.0.0.1", EMPTY_BLOCK_SET)

    def test_none_address(self) -> None:
        assert not allowed(None, ["1.2.3.4"])

    def test_blank_address(self) -> None:
        assert not allowed("", ["1.2.3.4"])

    def test_badly_formatted_address(self) -> None:
        assert not allowed("1 2 3 4", ["1.2.3.4"])

    def test_integers_are_not_addresses(self) -> None:
        assert not allowed(2_130_706_433, ["127.0.0.1"])
        assert not allowed(16_909_060, ["1.2.3.4"])

    def test_malformed_native_address(self) -> None:
        assert not allowed((1, 2, 3), ["1.2.3.4"])
        assert not allowed(object(), ["1.2.3.4"])

    def test_malformed_allow_data_raises(self) -> None:
        with pytest.raises(InvalidCidrError):
            allowed("10.0.0.1", ["10.0.0.0/40"])


# ─── Membership ───────────────────────────────────────────────────────────────


class TestAllowedMembership:
    @pytest.mark.parametrize("allow, good, bad", ALLOW_CASES)
    def test_address_strings(self, allow: str, good: list[str], bad: list[str]) -> None:
        for ip in good:
            assert allowed(ip, [allow]), ip
        for ip in bad:
            assert not allowed(ip, [allow]), ip

    @pytest.mark.parametrize("allow, good, bad", ALLOW_CASES)
    def test_native_tuples(self, allow: str, good: list[str], bad: list[str]) -> None:
        for ip in good:
            assert allowed(_native(ip), [allow]), ip
        for ip in bad:
            assert not allowed(_native(ip), [allow]), ip

    @pytest.mark.parametrize("allow, good, bad", ALLOW_CASES)
    def test_allow_as_function(self, allow: str, good: list[str], bad: list[str]) -> None:
        def allow_list() -> list[str]:
            return [allow]

        for ip in good:
            assert allowed(ip, allow_list)
            assert allowed(_native(ip), allow_list)
        for ip in bad:
            assert not allowed(ip, allow_list)
            assert not allowed(_native(ip), allow_list)

    def test_resolved_configuration(self) -> None:
        options = unpack(pack(allow=["10.0.0.0/24"]))
        assert allowed("10.0.0.9", options)
        assert not allowed("10.0.1.9", options)

    def test_packed_configuration(self) -> None:
        configuration = pack(allow=lambda: "10.0.0.0/24")
        assert allowed("10.0.0.9", configuration)

    def test_block_set(self) -> None:
        assert allowed(parse_address("::1"), BlockSet.of("::1"))

    def test_mapped_v6_does_not_match_v4_block(self) -> None:
        assert not allowed("::ffff:10.0.0.1", ["10.0.0.0/8"])

    def test_first_matching_block_among_many(self) -> None:
        allow = ["192.168.0.0/16", "::1", "10.0.0.0/8"]
        assert allowed("10.200.0.1", allow)
        assert allowed("::1", allow)
        assert not allowed("172.16.0.1", allow)


# ─── normalize_remote_ip ─────────────────────────────────────────────────────


class TestNormalizeRemoteIp:
    def test_request_client_host(self) -> None:
        assert normalize_remote_ip(_request(("10.0.0.1", 1234))) == parse_address("10.0.0.1")

    def test_request_without_client(self) -> None:
        assert normalize_remote_ip(_request(None)) is None

    def test_request_with_unparseable_host(self) -> None:
        assert normalize_remote_ip(_request(("testclient", 50000))) is None

    def test_connection_like_object(self) -> None:
        connection = SimpleNamespace(client=SimpleNamespace(host="::1"))
        assert normalize_remote_ip(connection) == parse_address("::1")

    def test_native_forms(self) -> None:
        expected = parse_address("10.0.0.1")
        assert normalize_remote_ip((10, 0, 0, 1)) == expected
        assert normalize_remote_ip(b"\x0a\x00\x00\x01") == expected
        assert normalize_remote_ip(ipaddress.ip_address("10.0.0.1")) == expected
        assert normalize_remote_ip(expected) is expected

    def test_unusable_values(self) -> None:
        for value in (None, "", "nope", 167_772_161, (10, 0, 0), 1.5):
            assert normalize_remote_ip(value) is None
