"""Tests for CLI module."""

import json
import logging
from collections.abc import Generator
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from unittest.mock import patch

import pytest

from browser_test_harness.cli import (
    cleanup,
    format_output,
    log_report_summary,
    main,
    smoke,
)
from browser_test_harness.diagnostics import DiagnosticsReport
from browser_test_harness.errors import DiagnosticsCaptureFailure
from browser_test_harness.models.result import Artifact, ArtifactKind
from browser_test_harness.session_manager import SessionManager
from browser_test_harness.testing.factories import HarnessSettingsFactory
from browser_test_harness.testing.fakes import FakeServiceHandle, FakeSessionFactory

SETTINGS_YAML = """
test_run_setting: local
browser_settings:
  local: {driver_kind: chrome, is_headless: true}
environment_settings:
  local: {base_uri: "https://app.example.test"}
"""

WRITTEN_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Write a settings file."""
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML)
    return path


@pytest.fixture
def fake_manager() -> Generator[partial[SessionManager], None, None]:
    """Patch the CLI's SessionManager to use fakes."""
    manager_cls = partial(
        SessionManager,
        session_factory=FakeSessionFactory(),
        service_factory=FakeServiceHandle,
    )
    with patch("browser_test_harness.cli.SessionManager", manager_cls):
        yield manager_cls


def test_log_report_summary(caplog: pytest.LogCaptureFixture) -> None:
    """Logs artifacts and failures."""
    report = DiagnosticsReport(
        captured=True,
        artifacts=[
            Artifact(
                kind=ArtifactKind.SCREENSHOT,
                path=Path("logs/test.png"),
                written_at=WRITTEN_AT,
            ),
            Artifact(
                kind=ArtifactKind.INSTANCE_LOG,
                path=Path("logs/test.BROWSER.md"),
                written_at=WRITTEN_AT,
                channel="browser",
            ),
        ],
        failures=[DiagnosticsCaptureFailure("page-source", RuntimeError("gone"))],
    )

    with caplog.at_level(logging.INFO):
        log_report_summary(logging.getLogger(), report)

    assert "Smoke Diagnostics Summary:" in caplog.text
    assert "screenshot: logs/test.png" in caplog.text
    assert "instance-log (browser): logs/test.BROWSER.md" in caplog.text
    assert "Diagnostics step 'page-source' failed: gone" in caplog.text


def test_format_output() -> None:
    """Formats the run for JSON output."""
    manager = SessionManager(settings=HarnessSettingsFactory.build())
    report = DiagnosticsReport(
        captured=True,
        artifacts=[
            Artifact(
                kind=ArtifactKind.SCREENSHOT,
                path=Path("logs/test.png"),
                written_at=WRITTEN_AT,
            )
        ],
    )

    output = format_output(manager, report, [Path("bin/chromedriver.log")])

    assert output == {
        "run_setting": "local",
        "driver_kind": "chrome",
        "artifacts": [
            {"kind": "screenshot", "path": "logs/test.png", "channel": None}
        ],
        "failures": [],
        "deleted_logs": ["bin/chromedriver.log"],
    }


async def test_smoke_captures_screenshot(
    tmp_path: Path,
    settings_file: Path,
    fake_manager: partial[SessionManager],
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Runs one session and prints the captured artifacts."""
    binaries_directory = tmp_path / "bin"
    binaries_directory.mkdir()

    exit_code = await smoke(
        settings_path=settings_file,
        binaries_directory=binaries_directory,
        log_directory=tmp_path / "logs",
    )

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["run_setting"] == "local"
    assert [a["path"] for a in output["artifacts"]] == [
        str(tmp_path / "logs" / "BrowserHarnessSmoke.png")
    ]
    assert (tmp_path / "logs" / "BrowserHarnessSmoke.png").exists()


async def test_smoke_reports_missing_settings(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Returns an error exit code when the run cannot start."""
    exit_code = await smoke(
        settings_path=tmp_path / "missing.yaml",
        binaries_directory=tmp_path,
        log_directory=tmp_path / "logs",
    )

    assert exit_code == 2
    assert "Could not start the run" in caplog.text


def test_cleanup_prints_deleted_logs(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Deletes service logs and prints their paths."""
    (tmp_path / "chromedriver.log").write_text("log")

    assert cleanup(tmp_path) == 0

    output = json.loads(capsys.readouterr().out)
    assert output == {"deleted_logs": [str(tmp_path / "chromedriver.log")]}


def test_main_cleanup_exits(tmp_path: Path) -> None:
    """The cleanup command exits with its status."""
    with pytest.raises(SystemExit) as exc_info:
        main(["cleanup", "--binaries-dir", str(tmp_path)])

    assert exc_info.value.code == 0


def test_main_requires_command() -> None:
    """A command is required."""
    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 2
