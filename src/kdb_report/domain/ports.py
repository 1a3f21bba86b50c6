"""
Ports: Protocol-based interfaces at the edges of the analyzer.

The parse pass does not open files: it consumes any LineSource.
Reports do not print: they write to any ReportSink.

Each port is a Protocol (structural typing) so a plain list of strings,
an open text file or sys.stdout satisfy it without inheritance.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from kdb_report.domain.models import DumpRecord


@runtime_checkable
class LineSource(Protocol):
    """Port: yields the dump one line at a time, in input order."""

    def __iter__(self) -> Iterator[str]: ...


@runtime_checkable
class RecordParser(Protocol):
    """Port: turn one dump line into a DumpRecord, raising on mismatch."""

    def parse(self, line: str, line_number: int | None = None) -> DumpRecord: ...


@runtime_checkable
class ReportSink(Protocol):
    """Port: text stream receiving report output."""

    def write(self, text: str, /) -> int: ...
