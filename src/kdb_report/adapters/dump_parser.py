"""
Dump record parser adapter: one text line → DumpRecord.

Adapter layer: implements the RecordParser port with two regular
expressions:
  - _RECORD: the fixed whole-line grammar (anchored, VERBOSE)
  - _KEY_GROUP_SCAN: an exhaustive scan of the key list captured by _RECORD

Line layout (space separated):

  principal kvno:mkvno:etype:key:salt[:mkvno:etype:key:salt...]
  (mkvno may be empty; numeric columns are ASCII digits only)
  created:creator [modified:modifier | -] validstart validend pwend
  maxlife maxrenew flags generation extensions

Every date column is checked by the timestamp resolver here, so a
DumpRecord only ever carries well-formed tokens.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

import structlog

from kdb_report.domain.errors import (
    DumpAnalysisError,
    KeyListError,
    RecordGrammarError,
)
from kdb_report.domain.models import DumpRecord, KeyData
from kdb_report.domain.ports import RecordParser
from kdb_report.domain.timestamps import resolve_timestamp

log = structlog.get_logger()

# ─────────────────────── Grammar ───────────────────────

_KEY_GROUP = r"[^:\s]*:-?\d+:[^:\s]+:[^:\s]+"

_RECORD = re.compile(
    rf"""
    ^(?P<principal>[^\s@]+@\S+)\s+
    (?P<kvno>\d+):(?P<keys>{_KEY_GROUP}(?::{_KEY_GROUP})*)\s+
    (?P<created>[^:\s]+):(?P<created_by>\S+)\s+
    (?:(?:(?P<modified>[^:\s]+):(?P<modified_by>\S+)|-)\s+)?
    (?P<valid_start>\S+)\s+
    (?P<valid_end>\S+)\s+
    (?P<passwd_end>\S+)\s+
    (?P<max_life>\d+|-)\s+
    (?P<max_renew>\d+|-)\s+
    (?P<flags>\d+)\s+
    (?P<generation>\S+)\s+
    (?P<extensions>\S+)
    \s*$
    """,
    re.VERBOSE | re.ASCII,
)

_KEY_GROUP_SCAN = re.compile(r"(?:^|:)([^:\s]*):(-?\d+):([^:\s]+):([^:\s]+)", re.ASCII)


# ─────────────────────── Key list ───────────────────────


def extract_keys(key_list: str) -> tuple[KeyData, ...]:
    """
    Split a key list into its `mkvno:enctype:keyvalue:salt` groups.

    The scan must consume the whole list with adjacent matches. Finding
    nothing, or leaving a gap, means the line grammar and this scan
    disagree, which is fatal.
    """
    keys: list[KeyData] = []
    position = 0
    for match in _KEY_GROUP_SCAN.finditer(key_list):
        if match.start() != position:
            break
        mkvno, enctype, keyvalue, salt = match.groups()
        keys.append(KeyData(mkvno=mkvno, enctype=int(enctype), keyvalue=keyvalue, salt=salt))
        position = match.end()

    if not keys:
        raise KeyListError(f"No key groups found in key list {key_list!r}", offending=key_list)
    if position != len(key_list):
        raise KeyListError(
            f"Key list not fully consumed at offset {position}: {key_list!r}",
            offending=key_list,
        )
    return tuple(keys)


# ─────────────────────── Public Parser Class ───────────────────────


class HeimdalDumpParser:
    """
    Parse single dump lines into DumpRecord value objects.

    Implements the RecordParser port. Stateless: principal uniqueness is
    the aggregator's concern, not the parser's.
    """

    def parse(self, line: str, line_number: int | None = None) -> DumpRecord:
        """
        Match one line against the record grammar.

        Raises RecordGrammarError (with the raw line) when it does not match,
        KeyListError when the key list cannot be scanned, and TimestampError
        for a malformed date column.
        """
        raw = line.rstrip("\r\n")
        match = _RECORD.match(raw)
        if match is None:
            raise RecordGrammarError(
                f"Line does not match the dump grammar: {raw}",
                line_number=line_number,
                offending=raw,
            )

        try:
            record = self._build_record(match, line_number)
        except DumpAnalysisError as e:
            if line_number is not None:
                e.at_line(line_number)
            raise

        log.debug(
            "parser.record_parsed",
            principal=record.principal,
            keys=len(record.keys),
            line=line_number,
        )
        return record

    def _build_record(self, match: re.Match[str], line_number: int | None) -> DumpRecord:
        fields = match.groupdict()
        for column in ("created", "modified", "valid_start", "valid_end", "passwd_end"):
            if fields[column] is not None:
                resolve_timestamp(fields[column])

        return DumpRecord(
            principal=fields["principal"],
            kvno=int(fields["kvno"]),
            keys=extract_keys(fields["keys"]),
            created=fields["created"],
            created_by=fields["created_by"],
            modified=fields["modified"],
            modified_by=fields["modified_by"],
            valid_start=fields["valid_start"],
            valid_end=fields["valid_end"],
            passwd_end=fields["passwd_end"],
            max_life=fields["max_life"],
            max_renew=fields["max_renew"],
            flags=int(fields["flags"]),
            generation=fields["generation"],
            extensions=fields["extensions"],
            line_number=line_number,
        )


def iter_records(
    lines: Iterable[str],
    parser: RecordParser | None = None,
) -> Iterator[DumpRecord]:
    """Parse every non-blank line of a line source, numbering lines from 1."""
    parser = parser or HeimdalDumpParser()
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        yield parser.parse(line, line_number)
