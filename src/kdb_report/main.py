"""
Application entry point: the `kdb-report` command.

Composition root: loads settings, configures structlog, opens the dump,
runs the single parse pass, then prints the selected reports.

Responsibilities:
  1. Load and validate ReportSettings (environment / .env / --log-level)
  2. Configure structlog (console renderer on stderr)
  3. Capture "now" once for the whole run
  4. Build RunOptions from the CLI flags
  5. Aggregate the dump and emit reports on stdout

Any fatal error prints `FATAL: <reason>` on stdout and exits with status 1.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import NoReturn

import structlog
import typer
from pydantic import ValidationError

from kdb_report import __version__
from kdb_report.aggregator import run_analysis
from kdb_report.config import ReportSettings, RunOptions
from kdb_report.domain.errors import DumpAnalysisError, DumpConfigurationError
from kdb_report.reports import emit_reports

app = typer.Typer(
    name="kdb-report",
    help="Read-only reports over a Heimdal KDC database dump.",
    add_completion=False,
)


def configure_structlog(log_level: str = "WARNING") -> None:
    """
    Configure structlog for human-readable console logging.

    Log lines go to stderr so they never mix with report output on stdout.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.WARNING)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _fatal(message: str) -> NoReturn:
    typer.echo(f"FATAL: {message}")
    raise typer.Exit(code=1)


@contextmanager
def _open_dump(dump: str, encoding: str) -> Iterator[Iterable[str]]:
    """Yield the dump as a line source; '-' is standard input."""
    if dump == "-":
        yield sys.stdin
        return
    try:
        handle = open(dump, encoding=encoding)  # noqa: SIM115
    except OSError as e:
        raise DumpConfigurationError(
            f"Cannot read dump {dump}: {e.strerror}", offending=dump
        ) from e
    with handle:
        yield handle


def _load_settings(log_level: str | None) -> ReportSettings:
    overrides = {"log_level": log_level} if log_level is not None else {}
    try:
        return ReportSettings(**overrides)
    except ValidationError as e:
        _fatal(f"Configuration error: {e}")


@app.command()
def report(
    dump: str = typer.Argument(..., help="Dump file to analyze, or '-' for stdin"),
    summary: bool = typer.Option(False, "--summary", "-s", help="Encryption type usage and counts"),
    des: bool = typer.Option(False, "--des", help="Principals with single-DES keys"),
    des3: bool = typer.Option(False, "--des3", help="Principals with triple-DES keys"),
    arcfour: bool = typer.Option(False, "--arcfour", help="Principals with RC4 keys"),
    aes: bool = typer.Option(False, "--aes", help="Principals with AES-SHA1 keys"),
    flags: bool = typer.Option(False, "--flags", "-f", help="Flags of every principal"),
    find_flag: str | None = typer.Option(
        None, "--find-flag", "-F", metavar="FLAG", help="Principals carrying FLAG"
    ),
    passwd_expiry: bool = typer.Option(False, "--passwd-expiry", "-p", help="Password expiry dates"),
    princ_expiry: bool = typer.Option(False, "--princ-expiry", "-e", help="Principal expiry dates"),
    monthly: bool = typer.Option(False, "--monthly", "-m", help="Expiries grouped by month"),
    passwd_delta: bool = typer.Option(
        False, "--passwd-delta", help="Seconds from last modification to password expiry"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Dump the internal model as JSON"),
    valid: bool = typer.Option(False, "--valid", help="Expiry reports: only dates after now"),
    invalid: bool = typer.Option(False, "--invalid", help="Expiry reports: only dates before now"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override KDB_REPORT_LOG_LEVEL"),
) -> None:
    """Parse DUMP and print the selected reports (principal names by default)."""
    settings = _load_settings(log_level)
    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    now = settings.run_started_at()
    try:
        options = RunOptions(
            summary=summary,
            des=des,
            des3=des3,
            arcfour=arcfour,
            aes=aes,
            flags=flags,
            find_flag=find_flag,
            passwd_expiry=passwd_expiry,
            princ_expiry=princ_expiry,
            monthly=monthly,
            passwd_delta=passwd_delta,
            debug=debug,
            valid_only=valid,
            invalid_only=invalid,
        )
    except DumpAnalysisError as e:
        _fatal(str(e))
    log.info("app.starting", version=__version__, dump=dump, now=now.isoformat())

    try:
        with _open_dump(dump, settings.encoding) as lines:
            model = run_analysis(lines, now, options)
    except DumpAnalysisError as e:
        failure = e.describe()
        log.error("app.fatal_error", code=failure.code.value, line=failure.line_number)
        _fatal(str(e))
    except UnicodeDecodeError as e:
        log.error("app.fatal_error", code="DECODE_ERROR", reason=str(e))
        _fatal(f"Cannot decode dump {dump} as {settings.encoding}: {e.reason}")

    emit_reports(model, options, sys.stdout)


if __name__ == "__main__":
    app()
