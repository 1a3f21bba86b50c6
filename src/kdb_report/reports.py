"""
Report generators: read-only views over a finished DumpModel.

Each report is a plain function `(model, options, out) -> None` writing
text lines to a ReportSink. None of them mutates the model, so the
output of one report never depends on which others ran.

emit_reports() runs the selected reports in a fixed order.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict

import structlog

from kdb_report.config import RunOptions
from kdb_report.domain.enctypes import EncryptionFamily, resolve_enctype
from kdb_report.domain.models import DumpModel, ExpiryClass
from kdb_report.domain.ports import ReportSink
from kdb_report.domain.timestamps import format_timestamp, resolve_timestamp

log = structlog.get_logger()

Report = Callable[[DumpModel, RunOptions, ReportSink], None]


def _line(out: ReportSink, text: str = "") -> None:
    out.write(f"{text}\n")


# ─────────────────────── Listings ───────────────────────


def report_principals(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Every principal name, sorted."""
    for name in sorted(model.entries):
        _line(out, name)


def report_summary(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Enctype usage across all keys, then the run counters."""
    _line(out, "Encryption types:")
    for code in sorted(model.enctype_usage):
        _line(out, f"  {code:>6} {resolve_enctype(code)}: {model.enctype_usage[code]}")

    counters = model.counters
    _line(out, "Summary:")
    _line(out, f"  principals: {counters.total_entries}")
    _line(out, f"  host principals: {model.host_principals}")
    for family in EncryptionFamily:
        _line(out, f"  {family.value} principals: {len(model.families[family])}")
    _line(out, f"  expired principals: {counters.expired_principals}")
    _line(out, f"  future-expiring principals: {counters.future_principals}")
    _line(out, f"  expired passwords: {counters.expired_passwords}")
    _line(out, f"  future-expiring passwords: {counters.future_passwords}")


def report_family(family: EncryptionFamily) -> Report:
    """Build the listing for one encryption family."""

    def _report(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
        members = sorted(model.families[family])
        _line(out, f"{family.value} principals ({len(members)}):")
        for name in members:
            _line(out, f"  {name}")

    _report.__name__ = f"report_family_{family.value}"
    return _report


def report_flags(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Each principal with its flag names, sorted."""
    for entry in model.sorted_entries():
        _line(out, f"{entry.principal}: {', '.join(sorted(entry.flags))}")


def report_find_flag(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Principals carrying the queried flag."""
    if not model.flag_found:
        _line(out, f"No principals found with flag {model.query_flag}")
        return
    _line(out, f"Principals with flag {model.query_flag}:")
    for entry in model.sorted_entries():
        if entry.flag_match:
            _line(out, f"  {entry.principal}")


# ─────────────────────── Expiry ───────────────────────


def report_passwd_expiry(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Stored password-end dates (already filtered by --valid / --invalid)."""
    for entry in model.sorted_entries():
        instant = resolve_timestamp(entry.passwd_end) if entry.passwd_end else None
        if instant is not None:
            _line(out, f"{entry.principal}\t{format_timestamp(instant)}")


def report_princ_expiry(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Stored validity-end dates (already filtered by --valid / --invalid)."""
    for entry in model.sorted_entries():
        instant = resolve_timestamp(entry.valid_end) if entry.valid_end else None
        if instant is not None:
            _line(out, f"{entry.principal}\t{format_timestamp(instant)}")


def report_monthly(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Expiry index, one block per (kind, status, year, month) cell."""
    wanted: set[str] = set()
    if options.valid_only:
        wanted.add(ExpiryClass.VALID.value)
    if options.invalid_only:
        wanted.add(ExpiryClass.EXPIRED.value)

    for bucket, members in model.sorted_expiry_buckets():
        if wanted and bucket.status not in wanted:
            continue
        _line(out, f"{bucket.kind} {bucket.status} {bucket.year}-{bucket.month}: {len(members)}")
        for name in members:
            _line(out, f"  {name}")


def report_passwd_delta(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Seconds from last modification to password end, signed."""
    for entry in model.sorted_entries():
        if entry.passwd_end is None or entry.modified is None:
            continue
        passwd_end = resolve_timestamp(entry.passwd_end)
        modified = resolve_timestamp(entry.modified)
        if passwd_end is None or modified is None:
            continue
        delta = int((passwd_end - modified).total_seconds())
        _line(out, f"{entry.principal}\t{delta}")


# ─────────────────────── Debug ───────────────────────


def model_as_dict(model: DumpModel) -> dict[str, object]:
    """A JSON-ready rendering of the whole model, with deterministic ordering."""
    return {
        "now": model.now.isoformat(),
        "query_flag": model.query_flag,
        "flag_found": model.flag_found,
        "counters": asdict(model.counters),
        "enctype_usage": {
            str(code): model.enctype_usage[code] for code in sorted(model.enctype_usage)
        },
        "families": {
            family.value: sorted(model.families[family]) for family in EncryptionFamily
        },
        "expiry_index": [
            {**bucket._asdict(), "principals": members}
            for bucket, members in model.sorted_expiry_buckets()
        ],
        "entries": {
            entry.principal: {
                "enctypes": dict(sorted(entry.enctypes.items())),
                "flags": sorted(entry.flags),
                "valid_end": entry.valid_end,
                "passwd_end": entry.passwd_end,
                "modified": entry.modified,
                "flag_match": entry.flag_match,
            }
            for entry in model.sorted_entries()
        },
    }


def report_debug(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Dump the full internal model as indented JSON."""
    _line(out, json.dumps(model_as_dict(model), indent=2))


# ─────────────────────── Dispatch ───────────────────────


def selected_reports(options: RunOptions) -> list[Report]:
    """The reports a run asked for, in output order; the principal list by default."""
    if not options.any_report_selected:
        return [report_principals]

    toggles: list[tuple[bool, Report]] = [
        (options.summary, report_summary),
        (options.des, report_family(EncryptionFamily.DES)),
        (options.des3, report_family(EncryptionFamily.DES3)),
        (options.arcfour, report_family(EncryptionFamily.ARCFOUR)),
        (options.aes, report_family(EncryptionFamily.AES)),
        (options.flags, report_flags),
        (options.find_flag is not None, report_find_flag),
        (options.passwd_expiry, report_passwd_expiry),
        (options.princ_expiry, report_princ_expiry),
        (options.monthly, report_monthly),
        (options.passwd_delta, report_passwd_delta),
        (options.debug, report_debug),
    ]
    return [report for enabled, report in toggles if enabled]


def emit_reports(model: DumpModel, options: RunOptions, out: ReportSink) -> None:
    """Run every selected report against the model, in order."""
    reports = selected_reports(options)
    for report in reports:
        report(model, options, out)
    log.info("reports.emitted", reports=[report.__name__ for report in reports])
