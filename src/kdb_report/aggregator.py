"""
Entry aggregator: the single parse pass that builds the DumpModel.

Flow per line:

  line
    → HeimdalDumpParser.parse()         (grammar, key scan, date checks)
      → resolve_enctype / classify      (usage map, family sets)
      → decode_flags                    (flag set, query-flag match)
      → expiry classification           (counters, expiry index, storage)
        → DumpModel

Errors are not caught here: the first malformed line, duplicate
principal or bad query flag ends the run.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from kdb_report.adapters.dump_parser import HeimdalDumpParser, iter_records
from kdb_report.config import RunOptions
from kdb_report.domain.enctypes import classify_enctype, resolve_enctype
from kdb_report.domain.errors import DuplicatePrincipalError
from kdb_report.domain.flags import decode_flags, flag_bit
from kdb_report.domain.models import (
    DumpModel,
    DumpRecord,
    Entry,
    ExpiryBucket,
    ExpiryClass,
    ExpiryKind,
)
from kdb_report.domain.ports import LineSource, RecordParser
from kdb_report.domain.timestamps import UNSET, resolve_timestamp

log = structlog.get_logger()


class EntryAggregator:
    """
    Accumulate parsed records into a DumpModel.

    `now` is frozen at construction; every expiry date is compared with it.
    The query flag (if any) is validated here, before the first record.
    """

    def __init__(
        self,
        now: datetime,
        options: RunOptions | None = None,
        parser: RecordParser | None = None,
    ) -> None:
        self._options = options or RunOptions()
        self._parser = parser or HeimdalDumpParser()
        self._query_bit = (
            flag_bit(self._options.find_flag) if self._options.find_flag is not None else None
        )
        self._model = DumpModel(now=now, query_flag=self._options.find_flag)

    def consume(self, lines: LineSource) -> DumpModel:
        """Parse and aggregate every line of a line source, in order."""
        for record in iter_records(lines, self._parser):
            self.add(record)

        counters = self._model.counters
        log.info(
            "aggregator.complete",
            entries=counters.total_entries,
            expired_principals=counters.expired_principals,
            future_principals=counters.future_principals,
            expired_passwords=counters.expired_passwords,
            future_passwords=counters.future_passwords,
            enctypes=len(self._model.enctype_usage),
        )
        return self._model

    def add(self, record: DumpRecord) -> Entry:
        """Create the entry for one record. A principal may only be added once."""
        if record.principal in self._model.entries:
            raise DuplicatePrincipalError(
                f"Duplicate principal: {record.principal}",
                line_number=record.line_number,
                offending=record.principal,
            )

        entry = Entry(principal=record.principal)
        self._model.entries[record.principal] = entry
        self._model.counters.total_entries += 1

        self._add_keys(entry, record)
        self._add_flags(entry, record.flags)
        entry.valid_end = self._classify_expiry(ExpiryKind.VALID_END, entry.principal, record.valid_end)
        entry.passwd_end = self._classify_expiry(
            ExpiryKind.PASSWD_END, entry.principal, record.passwd_end
        )
        if record.modified is not None and record.modified != UNSET:
            entry.modified = record.modified
        return entry

    def _add_keys(self, entry: Entry, record: DumpRecord) -> None:
        for key in record.keys:
            name = resolve_enctype(key.enctype)
            self._model.enctype_usage[key.enctype] += 1
            entry.enctypes[name] = entry.enctypes.get(name, 0) + 1
            for family in classify_enctype(name):
                self._model.families[family].add(entry.principal)

    def _add_flags(self, entry: Entry, flags: int) -> None:
        entry.flags = decode_flags(flags)
        if self._query_bit is not None and flags & self._query_bit:
            entry.flag_match = True
            self._model.flag_found = True

    def _classify_expiry(self, kind: ExpiryKind, principal: str, token: str) -> str | None:
        """
        Count and index one expiry date; return the token if the entry keeps it.

        An instant equal to `now` is neither expired nor valid.
        """
        instant = resolve_timestamp(token)
        if instant is None:
            return None

        status: ExpiryClass | None = None
        if instant < self._model.now:
            status = ExpiryClass.EXPIRED
        elif instant > self._model.now:
            status = ExpiryClass.VALID

        if status is not None:
            self._model.counters.record_expiry(kind, status)
            bucket = ExpiryBucket(
                kind=kind.value,
                status=status.value,
                year=f"{instant.year:04d}",
                month=f"{instant.month:02d}",
            )
            self._model.expiry_index.setdefault(bucket, set()).add(principal)

        return token if self._keeps(status) else None

    def _keeps(self, status: ExpiryClass | None) -> bool:
        options = self._options
        if not options.valid_only and not options.invalid_only:
            return True
        return (options.valid_only and status is ExpiryClass.VALID) or (
            options.invalid_only and status is ExpiryClass.EXPIRED
        )


def run_analysis(
    lines: LineSource,
    now: datetime,
    options: RunOptions | None = None,
) -> DumpModel:
    """Build the DumpModel for a whole dump. Raises on the first fatal error."""
    return EntryAggregator(now=now, options=options).consume(lines)
