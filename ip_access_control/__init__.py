"""ip_access_control — restrict requests to an allow list of IP addresses and CIDR ranges.

Usage:
    from ip_access_control import IPAccessControlMiddleware

    app.add_middleware(
        IPAccessControlMiddleware,
        allow=["1.1.1.0/31", "1.1.0.0/24", "127.0.0.0/8"],
    )

Public API:
    IPAccessControlMiddleware — Starlette / FastAPI middleware
    allowed                   — pure decision function
    pack, unpack              — setup-time / per-request option resolution
    BlockSet, parse_*         — address codec and block sets
    AllowListFile             — hot-reloadable YAML allow list
    load_options              — YAML options file + env overrides
    configure_logging         — opt-in JSON / console log output
"""
from ip_access_control.address import (
    Address,
    BlockSet,
    CidrBlock,
    Family,
    encode,
    parse_address,
    parse_cidr,
    parse_list,
)
from ip_access_control.allowlist import AllowListFile
from ip_access_control.config import load_options
from ip_access_control.engine import allowed
from ip_access_control.errors import (
    ConfigFileError,
    InvalidAddressError,
    InvalidCidrError,
    InvalidOptionError,
    IPAccessControlError,
    MissingAllowConfigurationError,
)
from ip_access_control.middleware import IPAccessControlMiddleware
from ip_access_control.options import (
    BoundReference,
    Capabilities,
    Configuration,
    ResolvedConfiguration,
    pack,
    unpack,
)
from ip_access_control.responses import build_blocked_response, ip_access_on_blocked
from ip_access_control.utils.logger import configure_logging

__version__ = "1.0.0"

__all__ = [
    "Address",
    "AllowListFile",
    "BlockSet",
    "BoundReference",
    "Capabilities",
    "CidrBlock",
    "ConfigFileError",
    "Configuration",
    "Family",
    "IPAccessControlError",
    "IPAccessControlMiddleware",
    "InvalidAddressError",
    "InvalidCidrError",
    "InvalidOptionError",
    "MissingAllowConfigurationError",
    "ResolvedConfiguration",
    "allowed",
    "build_blocked_response",
    "configure_logging",
    "encode",
    "ip_access_on_blocked",
    "load_options",
    "pack",
    "parse_address",
    "parse_cidr",
    "parse_list",
    "unpack",
]
