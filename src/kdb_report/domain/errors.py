"""
Fatal errors raised while analyzing a dump.

Every failure in this tool is non-recoverable: the parse pass raises,
nothing catches it on the way up, and the CLI turns it into a diagnostic
and a non-zero exit status.

Each exception carries a DumpErrorCode so callers (and tests) can tell
the failure kinds apart without matching on message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique


@unique
class DumpErrorCode(Enum):
    """Structured error codes for the fatal failure kinds."""

    GRAMMAR_MISMATCH = "GRAMMAR_MISMATCH"
    """The line does not match the dump record grammar."""

    DUPLICATE_PRINCIPAL = "DUPLICATE_PRINCIPAL"
    """A principal name was seen on more than one line."""

    MALFORMED_TIMESTAMP = "MALFORMED_TIMESTAMP"
    """A date token is neither YYYYMMDDHHMMSS nor '-'."""

    KEY_SCAN_MISMATCH = "KEY_SCAN_MISMATCH"
    """The key list matched the grammar but the group scan could not consume it."""

    UNKNOWN_FLAG = "UNKNOWN_FLAG"
    """The queried flag name is not in the flag table."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Unreadable input or invalid run configuration."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """Immutable summary of a fatal error, suitable for logging."""

    code: DumpErrorCode
    message: str
    line_number: int | None = None
    offending: str | None = None


class DumpAnalysisError(Exception):
    """Root of every fatal error raised by the analyzer."""

    code = DumpErrorCode.CONFIGURATION_ERROR

    def __init__(
        self,
        message: str,
        *,
        line_number: int | None = None,
        offending: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.offending = offending

    def at_line(self, line_number: int) -> DumpAnalysisError:
        """Attach the 1-based input line number, if not already known."""
        if self.line_number is None:
            self.line_number = line_number
        return self

    def describe(self) -> FailureDescription:
        return FailureDescription(
            code=self.code,
            message=self.message,
            line_number=self.line_number,
            offending=self.offending,
        )

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"line {self.line_number}: {self.message}"


class RecordGrammarError(DumpAnalysisError):
    code = DumpErrorCode.GRAMMAR_MISMATCH


class DuplicatePrincipalError(DumpAnalysisError):
    code = DumpErrorCode.DUPLICATE_PRINCIPAL


class TimestampError(DumpAnalysisError):
    code = DumpErrorCode.MALFORMED_TIMESTAMP


class KeyListError(DumpAnalysisError):
    code = DumpErrorCode.KEY_SCAN_MISMATCH


class UnknownFlagError(DumpAnalysisError):
    code = DumpErrorCode.UNKNOWN_FLAG


class DumpConfigurationError(DumpAnalysisError):
    code = DumpErrorCode.CONFIGURATION_ERROR
