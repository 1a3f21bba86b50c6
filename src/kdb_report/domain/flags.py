"""
HDB entry flags: the 32-bit bitmask in the flags column of a dump.

Twenty bits carry names; bits 19-30 are unassigned and ignored when
decoding.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from kdb_report.domain.errors import UnknownFlagError

FLAG_BITS: MappingProxyType[str, int] = MappingProxyType({
    "initial": 1 << 0,
    "forwardable": 1 << 1,
    "proxiable": 1 << 2,
    "renewable": 1 << 3,
    "postdate": 1 << 4,
    "server": 1 << 5,
    "client": 1 << 6,
    "invalid": 1 << 7,
    "require_preauth": 1 << 8,
    "change_pw": 1 << 9,
    "require_hwauth": 1 << 10,
    "ok_as_delegate": 1 << 11,
    "user_to_user": 1 << 12,
    "immutable": 1 << 13,
    "trusted_for_delegation": 1 << 14,
    "allow_kerberos4": 1 << 15,
    "allow_digest": 1 << 16,
    "locked_out": 1 << 17,
    "require_pwchange": 1 << 18,
    "do_not_store": 1 << 31,
})


def decode_flags(flags: int) -> frozenset[str]:
    """Expand a flags integer into the names of the bits it carries."""
    return frozenset(name for name, bit in FLAG_BITS.items() if flags & bit)


def encode_flags(names: Iterable[str]) -> int:
    """OR together the bits of the given flag names."""
    value = 0
    for name in names:
        value |= flag_bit(name)
    return value


def flag_bit(name: str) -> int:
    """Return the bit for a flag name; UnknownFlagError if there is none."""
    try:
        return FLAG_BITS[name]
    except KeyError:
        raise UnknownFlagError(
            f"Unknown flag {name!r}; expected one of: {', '.join(FLAG_BITS)}",
            offending=name,
        ) from None
