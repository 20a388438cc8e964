"""Access decision: is the request's address in the allow list?

allowed() is a pure function of its two arguments. It never produces a
response and never raises for request-side input; acting on the verdict is
the middleware's job.

Remote address normalization:
  - connection-like objects (Starlette Request / HTTPConnection, or anything
    with a ``client`` attribute) -> ``client.host``, then normalized again
  - None / ""                      -> not allowed, nothing parsed
  - str                            -> parse_address(); invalid -> not allowed
  - integers                       -> not allowed (not an address format)
  - native forms (tuples, bytes, ipaddress objects, Address) -> encode()

Default deny: an empty or missing allow list rejects every address, valid
or not.
"""

from __future__ import annotations

from typing import Any, Optional

from ip_access_control.address.blocks import EMPTY_BLOCK_SET, BlockSet
from ip_access_control.address.codec import Address, encode, parse_address
from ip_access_control.errors import InvalidAddressError
from ip_access_control.options.resolver import Configuration, ResolvedConfiguration, unpack
from ip_access_control.utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


def normalize_remote_ip(remote_ip: Any) -> Optional[Address]:
    """Return the Address for ``remote_ip``, or None if it has no usable address."""
    if remote_ip is None:
        return None

    client = getattr(remote_ip, "client", _MISSING)
    if client is not _MISSING:
        host = getattr(client, "host", None) if client is not None else None
        return normalize_remote_ip(host)

    if isinstance(remote_ip, str):
        if not remote_ip:
            return None
        try:
            return parse_address(remote_ip)
        except InvalidAddressError:
            logger.debug("Unparseable remote address", remote_ip=remote_ip)
            return None

    if isinstance(remote_ip, int):
        return None

    try:
        return encode(remote_ip)
    except InvalidAddressError:
        logger.debug("Unsupported remote address", remote_ip=repr(remote_ip))
        return None


def _allow_blocks(allow: Any) -> BlockSet:
    if allow is None:
        return EMPTY_BLOCK_SET
    if isinstance(allow, ResolvedConfiguration):
        return allow.allow
    if isinstance(allow, Configuration):
        return unpack(allow).allow
    if isinstance(allow, BlockSet):
        return allow
    if callable(allow):
        return _allow_blocks(allow())
    return BlockSet.of(allow)


def allowed(remote_ip: Any, allow: Any) -> bool:
    """Return True if ``remote_ip`` is inside the allow list.

    Args:
        remote_ip: Request, connection, address string or native address.
        allow:     ResolvedConfiguration (the normal case), BlockSet, None, or
                   raw allow-list data / a zero-argument function returning it.
                   Raw data is parsed on the spot; malformed data raises
                   InvalidCidrError because it is configuration, not input.

    Returns:
        True iff the normalized address is contained in a block of its own
        family. False for an empty allow list and for any address that
        cannot be normalized.
    """
    blocks = _allow_blocks(allow)
    if not blocks:
        return False

    address = normalize_remote_ip(remote_ip)
    if address is None:
        return False

    return blocks.contains(address)
