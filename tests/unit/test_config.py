"""
Unit tests for configuration: ReportSettings and RunOptions.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from kdb_report.config import ReportSettings, RunOptions
from kdb_report.domain.errors import UnknownFlagError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate tests from the caller's environment and any .env file."""
    for name in ("KDB_REPORT_LOG_LEVEL", "KDB_REPORT_NOW", "KDB_REPORT_ENCODING"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestReportSettings:
    def test_defaults(self) -> None:
        settings = ReportSettings()
        assert settings.log_level == "WARNING"
        assert settings.now is None
        assert settings.encoding == "utf-8"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """
        GIVEN KDB_REPORT_LOG_LEVEL=debug and KDB_REPORT_NOW set
        WHEN settings are loaded
        THEN the level is normalised and now is the configured instant.
        """
        monkeypatch.setenv("KDB_REPORT_LOG_LEVEL", "debug")
        monkeypatch.setenv("KDB_REPORT_NOW", "2021-01-01T00:00:00+00:00")
        settings = ReportSettings()
        assert settings.log_level == "DEBUG"
        assert settings.logging_level() == logging.DEBUG
        assert settings.run_started_at() == datetime(2021, 1, 1, tzinfo=UTC)

    def test_dotenv_file(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("KDB_REPORT_LOG_LEVEL=error\n", encoding="utf-8")
        assert ReportSettings().log_level == "ERROR"

    def test_naive_now_is_utc(self) -> None:
        settings = ReportSettings(now=datetime(2021, 1, 1))
        assert settings.now == datetime(2021, 1, 1, tzinfo=UTC)

    def test_now_defaults_to_clock(self) -> None:
        before = datetime.now(UTC)
        started = ReportSettings().run_started_at()
        assert before <= started <= datetime.now(UTC)

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReportSettings(log_level="LOUD")

    def test_invalid_encoding_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReportSettings(encoding="no-such-codec")


class TestRunOptions:
    def test_nothing_selected_by_default(self) -> None:
        assert RunOptions().any_report_selected is False

    def test_modifiers_are_not_reports(self) -> None:
        assert RunOptions(valid_only=True, invalid_only=True).any_report_selected is False

    @pytest.mark.parametrize(
        "field",
        ["summary", "des", "des3", "arcfour", "aes", "flags", "passwd_expiry",
         "princ_expiry", "monthly", "passwd_delta", "debug"],
    )
    def test_each_toggle_selects_a_report(self, field: str) -> None:
        assert RunOptions(**{field: True}).any_report_selected is True

    def test_find_flag_selects_a_report(self) -> None:
        assert RunOptions(find_flag="server").any_report_selected is True

    def test_unknown_find_flag_rejected(self) -> None:
        """
        GIVEN a query flag name missing from the flag table
        WHEN RunOptions is built
        THEN UnknownFlagError is raised naming it.
        """
        with pytest.raises(UnknownFlagError) as excinfo:
            RunOptions(find_flag="bogus")
        assert excinfo.value.offending == "bogus"

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            RunOptions().summary = True  # type: ignore[misc]
