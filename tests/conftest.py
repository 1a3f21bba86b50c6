"""
Shared test fixtures and helpers for the kdb-report test suite.

Provides fixture dump paths, a fixed run-start instant and a builder
for single dump lines.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

FIXTURES_DIR = Path(__file__).parent / "fixtures"

FIXED_NOW = datetime(2021, 1, 1, tzinfo=UTC)

ALICE_LINE = (
    r"alice@EXAMPLE.COM 1:0:18:deadbeef:-\- 20200101000000:admin@EXAMPLE.COM "
    r"20200601000000:admin@EXAMPLE.COM - 20991231235959 20991231235959 "
    r"86400 604800 3 1:2:3 -"
)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Drop any structlog configuration a CLI run left behind."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def now() -> datetime:
    """The run-start instant used by every aggregation test."""
    return FIXED_NOW


@pytest.fixture()
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """A CliRunner for the kdb-report app with "now" pinned to FIXED_NOW."""
    monkeypatch.setenv("KDB_REPORT_NOW", FIXED_NOW.isoformat())
    monkeypatch.delenv("KDB_REPORT_LOG_LEVEL", raising=False)
    monkeypatch.delenv("KDB_REPORT_ENCODING", raising=False)
    return CliRunner()


def fixture_path(filename: str) -> Path:
    """
    Resolve the absolute path to a test fixture file.

    Raises FileNotFoundError if the fixture does not exist.
    """
    path = FIXTURES_DIR / filename
    if not path.exists():
        raise FileNotFoundError(f"Test fixture not found: {path}")
    return path


def dump_line(
    principal: str = "user@EXAMPLE.COM",
    keys: str = "1:18:deadbeef:-",
    kvno: int = 1,
    created: str = "20200101000000:admin@EXAMPLE.COM",
    modified: str = "-",
    valid_start: str = "-",
    valid_end: str = "-",
    passwd_end: str = "-",
    max_life: str = "86400",
    max_renew: str = "604800",
    flags: int = 0,
    generation: str = "1:2:3",
    extensions: str = "-",
) -> str:
    """Build one dump record line; every column can be overridden."""
    return " ".join([
        principal,
        f"{kvno}:{keys}",
        created,
        modified,
        valid_start,
        valid_end,
        passwd_end,
        max_life,
        max_renew,
        str(flags),
        generation,
        extensions,
    ])
