"""
Domain models: parsed dump records and the aggregated principal model.

DumpRecord and KeyData are frozen value objects produced by the parser,
one per input line. Entry, RunCounters and DumpModel are the mutable
aggregate built by the single parse pass; reports only read them.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from kdb_report.domain.enctypes import EncryptionFamily

_HOST_PRINCIPAL = re.compile(r"^host/[^@]*@")


class ExpiryKind(str, Enum):
    """The two expiry-bearing date columns of a record."""

    VALID_END = "validend"
    PASSWD_END = "passwdend"


class ExpiryClass(str, Enum):
    """Which side of the run-start instant an expiry date falls on."""

    EXPIRED = "expired"
    VALID = "valid"


class ExpiryBucket(NamedTuple):
    """
    Composite key of the expiry index.

    Plain strings so that sorting buckets is lexicographic on
    (kind, status, year, month).
    """

    kind: str
    status: str
    year: str
    month: str


@dataclass(frozen=True, slots=True)
class KeyData:
    """One `mkvno:enctype:keyvalue:salt` group from a record's key list."""

    mkvno: str
    enctype: int
    keyvalue: str = field(repr=False)
    salt: str


@dataclass(frozen=True, slots=True)
class DumpRecord:
    """
    A single dump line, split into its columns.

    Date columns keep their raw token (14 digits or '-'); the aggregator
    resolves them.
    """

    principal: str
    kvno: int
    keys: tuple[KeyData, ...]
    created: str
    created_by: str
    modified: str | None
    modified_by: str | None
    valid_start: str
    valid_end: str
    passwd_end: str
    max_life: str
    max_renew: str
    flags: int
    generation: str
    extensions: str
    line_number: int | None = None


@dataclass(slots=True)
class Entry:
    """
    Everything the reports know about one principal.

    `enctypes` maps resolved enctype names to how many keys of this
    principal use them. Expiry tokens are only present when the run's
    valid/invalid filter allowed them to be stored.
    """

    principal: str
    enctypes: dict[str, int] = field(default_factory=dict)
    flags: frozenset[str] = field(default_factory=frozenset)
    passwd_end: str | None = None
    valid_end: str | None = None
    modified: str | None = None
    flag_match: bool = False


@dataclass(slots=True)
class RunCounters:
    """Global counters fed by the parse pass."""

    total_entries: int = 0
    expired_principals: int = 0
    future_principals: int = 0
    expired_passwords: int = 0
    future_passwords: int = 0

    def record_expiry(self, kind: ExpiryKind, status: ExpiryClass) -> None:
        match kind, status:
            case ExpiryKind.VALID_END, ExpiryClass.EXPIRED:
                self.expired_principals += 1
            case ExpiryKind.VALID_END, ExpiryClass.VALID:
                self.future_principals += 1
            case ExpiryKind.PASSWD_END, ExpiryClass.EXPIRED:
                self.expired_passwords += 1
            case ExpiryKind.PASSWD_END, ExpiryClass.VALID:
                self.future_passwords += 1


@dataclass(slots=True)
class DumpModel:
    """
    The aggregate produced by one pass over a dump.

    `now` is the frozen run-start instant every expiry was compared with.
    """

    now: datetime
    query_flag: str | None = None
    entries: dict[str, Entry] = field(default_factory=dict)
    enctype_usage: Counter[int] = field(default_factory=Counter)
    families: dict[EncryptionFamily, set[str]] = field(
        default_factory=lambda: {family: set() for family in EncryptionFamily}
    )
    expiry_index: dict[ExpiryBucket, set[str]] = field(default_factory=dict)
    counters: RunCounters = field(default_factory=RunCounters)
    flag_found: bool = False

    @property
    def host_principals(self) -> int:
        return sum(1 for name in self.entries if _HOST_PRINCIPAL.match(name))

    def sorted_entries(self) -> list[Entry]:
        return [self.entries[name] for name in sorted(self.entries)]

    def sorted_expiry_buckets(self) -> list[tuple[ExpiryBucket, list[str]]]:
        """Expiry index cells in (kind, status, year, month) order, members sorted."""
        return [
            (bucket, sorted(self.expiry_index[bucket]))
            for bucket in sorted(self.expiry_index)
        ]
