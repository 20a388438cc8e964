"""Address codec and block sets.

Public API:
    Address, CidrBlock, Family — normalized address types
    parse_address, parse_cidr, encode, parse_list — codec functions
    BlockSet — parsed allow list with containment test
"""
from ip_access_control.address.blocks import EMPTY_BLOCK_SET, BlockSet
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

__all__ = [
    "Address",
    "BlockSet",
    "CidrBlock",
    "EMPTY_BLOCK_SET",
    "Family",
    "encode",
    "mask",
    "parse_address",
    "parse_cidr",
    "parse_list",
]
