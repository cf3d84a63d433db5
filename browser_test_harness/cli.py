"""CLI entry point for the browser test harness."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from browser_test_harness.artifacts import FileArtifactSink
from browser_test_harness.diagnostics import DiagnosticsReport
from browser_test_harness.errors import HarnessError
from browser_test_harness.models.test_context import TestAttributes, TestIdentity
from browser_test_harness.session_manager import SessionManager, cleanup_service_logs
from browser_test_harness.settings_loader import load_settings

SMOKE_TEST_NAME = "BrowserHarnessSmoke"


def log_report_summary(log: logging.Logger, report: DiagnosticsReport) -> None:
    """Log the artifacts and failures of a diagnostics pass."""
    log.info("=" * 80)
    log.info("Smoke Diagnostics Summary:")
    log.info("=" * 80)

    for artifact in report.artifacts:
        if artifact.channel:
            log.info("  %s (%s): %s", artifact.kind, artifact.channel, artifact.path)
        else:
            log.info("  %s: %s", artifact.kind, artifact.path)
    for failure in report.failures:
        log.info("  failed: %s", failure)


def format_output(
    manager: SessionManager, report: DiagnosticsReport, deleted: Sequence[Path]
) -> dict[str, Any]:
    """Format a smoke run for JSON output."""
    return {
        "run_setting": manager.settings.run_setting,
        "driver_kind": str(manager.settings.browser.driver_kind),
        "artifacts": [
            {
                "kind": str(artifact.kind),
                "path": str(artifact.path),
                "channel": artifact.channel,
            }
            for artifact in report.artifacts
        ],
        "failures": [str(failure) for failure in report.failures],
        "deleted_logs": [str(path) for path in deleted],
    }


async def smoke(
    settings_path: Path,
    binaries_directory: Path,
    log_directory: Path,
    run_setting: str | None = None,
    debug_mode: bool = False,
) -> int:
    """Run one session end to end and capture its diagnostics."""
    log = logging.getLogger("browser_test_harness")

    try:
        settings = await load_settings(settings_path, run_setting)
        manager = SessionManager(
            settings=settings, debug_mode=debug_mode, sink=FileArtifactSink()
        )
        await manager.start_run(binaries_directory)
    except (HarnessError, FileNotFoundError, ValueError) as e:
        log.error("Could not start the run: %s", e)
        return 2

    try:
        await manager.start_test()
        report = await manager.stop_test(
            TestIdentity(
                name=SMOKE_TEST_NAME,
                class_name="browser_test_harness.cli",
                binaries_directory=binaries_directory,
                deployment_directory=Path.cwd(),
                log_directory=log_directory,
            ),
            TestAttributes(description="Driver service and browser smoke check"),
            "failed",
        )
    except HarnessError as e:
        log.error("Smoke session failed: %s", e)
        await manager.stop_run()
        return 2

    deleted = await manager.stop_run()

    log_report_summary(log, report)
    print(json.dumps(format_output(manager, report, deleted), indent=2))

    return 1 if report.failures else 0


def cleanup(binaries_directory: Path) -> int:
    """Delete leftover driver service logs."""
    deleted = cleanup_service_logs(binaries_directory)
    print(json.dumps({"deleted_logs": [str(path) for path in deleted]}, indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Browser test harness utilities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    smoke_parser = subparsers.add_parser(
        "smoke", help="Start a driver service, open one session and capture diagnostics"
    )
    smoke_parser.add_argument(
        "--settings",
        type=Path,
        required=True,
        help="Path to the YAML settings file",
    )
    smoke_parser.add_argument(
        "--binaries-dir",
        type=Path,
        required=True,
        help="Directory holding the driver service binaries",
    )
    smoke_parser.add_argument(
        "--run-setting",
        default=None,
        help="Settings section to use instead of test_run_setting",
    )
    smoke_parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("test-logs"),
        help="Directory for the captured artifacts",
    )
    smoke_parser.add_argument(
        "--debug",
        action="store_true",
        help="Capture page source, browser logs and the service log as well",
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Delete driver service logs from the binaries directory"
    )
    cleanup_parser.add_argument(
        "--binaries-dir",
        type=Path,
        required=True,
        help="Directory holding the driver service binaries",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.command == "cleanup":
        sys.exit(cleanup(args.binaries_dir))

    exit_code = asyncio.run(
        smoke(
            settings_path=args.settings,
            binaries_directory=args.binaries_dir,
            log_directory=args.log_dir,
            run_setting=args.run_setting,
            debug_mode=args.debug,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
