"""Outcome-gated capture of forensic artifacts at the end of a test."""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeAlias

from browser_test_harness.artifacts import ArtifactSink, artifact_name
from browser_test_harness.drivers.base import BrowserSession
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.errors import (
    DiagnosticsCaptureFailure,
    UnsupportedOperationError,
)
from browser_test_harness.models.result import Artifact, ArtifactKind, TestResultStatus
from browser_test_harness.models.run import RunContext
from browser_test_harness.models.settings import DRIVER_KIND_DISPLAY
from browser_test_harness.models.test_context import (
    PRIORITY_UNSET,
    TIMEOUT_INFINITE,
    TestAttributes,
    TestIdentity,
)
from browser_test_harness.service import ServiceHandle

log = logging.getLogger(__name__)

SECTION_SEPARATOR = "=" * 80


@dataclass(frozen=True, kw_only=True)
class DiagnosticsReport:
    """What the diagnostics pass did for one test."""

    captured: bool
    summary: str = ""
    artifacts: Sequence[Artifact] = ()
    failures: Sequence[DiagnosticsCaptureFailure] = ()

    @property
    def paths(self) -> Sequence[Path]:
        """Paths of every artifact written."""
        return [artifact.path for artifact in self.artifacts]


def should_capture(status: TestResultStatus, debug_mode: bool) -> bool:
    """Artifacts are captured for any non-passing test, or always in debug mode."""
    return status is not TestResultStatus.PASS or debug_mode


def format_section(title: str, values: Mapping[str, str]) -> str:
    """Render a titled block of key/value lines."""
    lines = [title.upper()]
    lines.extend(f"{key:<25}\t{value}" for key, value in values.items())
    lines.append(SECTION_SEPARATOR)
    return "\n".join(lines)


def describe_attributes(attributes: TestAttributes) -> Mapping[str, str]:
    """Summarize test attributes, with placeholders for missing values."""
    if attributes.timeout_ms == TIMEOUT_INFINITE:
        timeout = "Infinite"
    else:
        timeout = f"{attributes.timeout_ms / 1000:g} (seconds)"

    return {
        "Owner": attributes.owner or "-no owner-",
        "Description": attributes.description or "-no description-",
        "Timeout": timeout,
        "Test Priority": (
            "-no priority-"
            if attributes.priority == PRIORITY_UNSET
            else str(attributes.priority)
        ),
        "Test Category": ", ".join(attributes.categories) or "-no test category-",
        "Test Property": ", ".join(
            f"{key}={value}" for key, value in attributes.extra_properties
        )
        or "-no key-=-no value-",
        "Work Item": ", ".join(str(item) for item in attributes.work_items)
        or "-no work item-",
    }


Step: TypeAlias = Callable[[], Awaitable[Sequence[Artifact]]]


@dataclass(frozen=True, kw_only=True)
class DiagnosticsCollector:
    """Captures the diagnostic bundle for a finished test.

    Every step is isolated: a failing step is logged and recorded in the
    report, and the remaining steps still run.
    """

    context: RunContext
    profile: DriverProfile
    service: ServiceHandle
    sink: ArtifactSink

    async def collect(
        self,
        identity: TestIdentity,
        attributes: TestAttributes,
        status: TestResultStatus,
        session: BrowserSession,
    ) -> DiagnosticsReport:
        """Capture artifacts if the outcome or debug mode calls for it."""
        debug_mode = self.context.debug_mode
        if not should_capture(status, debug_mode):
            log.debug("Test %s passed, no diagnostics captured", identity.name)
            return DiagnosticsReport(captured=False)

        log.info(
            "Capturing diagnostics: test=%s, status=%s, debug_mode=%s",
            identity.name,
            status.display_name,
            debug_mode,
        )

        failures: list[DiagnosticsCaptureFailure] = []
        summary = await self.summarize(identity, attributes, status, session, failures)
        log.info("Test diagnostics:\n%s", summary)

        steps: list[tuple[str, Step]] = [
            ("screenshot", lambda: self.capture_screenshot(identity, session)),
        ]
        if debug_mode:
            steps.extend(
                [
                    (
                        "page-source",
                        lambda: self.capture_page_source(identity, session),
                    ),
                    (
                        "instance-logs",
                        lambda: self.capture_instance_logs(identity, session),
                    ),
                    ("service-log", lambda: self.capture_service_log(identity)),
                ]
            )

        artifacts: list[Artifact] = []
        for name, step in steps:
            try:
                artifacts.extend(await step())
            except Exception as exc:
                failures.append(self._record_failure(name, exc))

        return DiagnosticsReport(
            captured=True,
            summary=summary,
            artifacts=artifacts,
            failures=failures,
        )

    async def summarize(
        self,
        identity: TestIdentity,
        attributes: TestAttributes,
        status: TestResultStatus,
        session: BrowserSession,
        failures: list[DiagnosticsCaptureFailure],
    ) -> str:
        """Build the text summary of the test, run settings and browser state."""
        browser = self.context.browser_settings
        sections = [
            format_section(
                "Test Result",
                {
                    "Test Name": identity.name,
                    "Class Name": identity.class_name,
                    "Status": status.display_name,
                },
            ),
            format_section("Test Attributes", describe_attributes(attributes)),
            format_section(
                "Environment Settings",
                {
                    "Run Environment": self.context.settings.run_setting.upper(),
                    "Current Dir": str(Path.cwd()),
                    "Logs Dir": str(identity.log_directory),
                    "Base URI": str(self.context.environment_settings.base_uri),
                },
            ),
            format_section(
                "WebDriver Service Settings",
                {
                    "Service Name": self.profile.service_binary_name,
                    "Service State": (
                        "RUNNING" if self.service.is_running else "STOPPED"
                    ),
                    "Service Window": (
                        "HIDDEN" if browser.hide_service_window else "VISIBLE"
                    ),
                    "Service URI": str(self.context.service_endpoint),
                    "Service Port": str(self.service.port),
                    "Process ID": str(self.context.service_process_id),
                },
            ),
        ]

        browser_values = {
            "Browser Name": DRIVER_KIND_DISPLAY[browser.driver_kind],
            "Browser Window": "MAXIMIZED" if browser.is_maximized else "NORMAL",
            "Browser Mode": "HEADLESS" if browser.is_headless else "NORMAL",
        }
        if not browser.is_maximized:
            browser_values["Browser Size"] = str(browser.window_size)
            browser_values["Browser Position"] = str(browser.window_position)
        sections.append(format_section("WebDriver Browser Settings", browser_values))

        try:
            state = await session.describe()
        except Exception as exc:
            failures.append(self._record_failure("browser-state", exc))
        else:
            sections.append(format_section("Browser State", state))

        return "\n".join(sections)

    async def capture_screenshot(
        self, identity: TestIdentity, session: BrowserSession
    ) -> Sequence[Artifact]:
        """Save a PNG of the viewport, unless the browser returned nothing."""
        png = await session.screenshot_png()
        if not png:
            log.warning(
                "Screenshot not taken: a webpage error may have prevented capture. "
                "Repro the test manually to identify the webpage error."
            )
            return []

        path = identity.log_directory / artifact_name(identity.name, "png")
        self.sink.write_bytes(path, png)
        return [self._publish(ArtifactKind.SCREENSHOT, path)]

    async def capture_page_source(
        self, identity: TestIdentity, session: BrowserSession
    ) -> Sequence[Artifact]:
        """Save the current page's HTML."""
        source = await session.page_source()
        if not source:
            log.info("Page source not available: the session returned no HTML")
            return []

        path = identity.log_directory / artifact_name(identity.name, "html")
        self.sink.write_text(path, source)
        return [self._publish(ArtifactKind.PAGE_SOURCE, path)]

    async def capture_instance_logs(
        self, identity: TestIdentity, session: BrowserSession
    ) -> Sequence[Artifact]:
        """Save every non-empty browser log channel."""
        if not self.profile.supports_log_channels:
            log.info(
                "Logs not available for %s", DRIVER_KIND_DISPLAY[self.profile.kind]
            )
            return []

        try:
            channels = await session.log_channels()
        except UnsupportedOperationError as exc:
            log.info("Logs not available for this driver: %s", exc)
            return []

        artifacts: list[Artifact] = []
        for channel in channels:
            try:
                entries = await session.read_log(channel)
            except UnsupportedOperationError as exc:
                log.info("Log channel %s not available: %s", channel, exc)
                continue

            text = "".join(entries)
            if not text:
                continue

            extension = "har" if channel.lower() == "har" else "md"
            path = identity.log_directory / artifact_name(
                identity.name, f"{channel.upper()}.{extension}"
            )
            log.info("Saving log type '%s'", channel.upper())
            self.sink.write_text(path, text)
            artifacts.append(
                self._publish(ArtifactKind.INSTANCE_LOG, path, channel=channel)
            )
        return artifacts

    async def capture_service_log(self, identity: TestIdentity) -> Sequence[Artifact]:
        """Copy the driver service's own log next to the other artifacts."""
        source = self.profile.service_log_path(self.context.binaries_directory)
        if not source.is_file():
            return []

        path = identity.log_directory / artifact_name(
            identity.name, self.profile.service_log_suffix
        )
        self.sink.copy_file(source, path)
        return [self._publish(ArtifactKind.SERVICE_LOG, path)]

    def _publish(
        self, kind: ArtifactKind, path: Path, channel: str | None = None
    ) -> Artifact:
        self.sink.publish(path)
        return Artifact(
            kind=kind,
            path=path,
            written_at=datetime.now(timezone.utc),
            channel=channel,
        )

    def _record_failure(self, step: str, exc: Exception) -> DiagnosticsCaptureFailure:
        failure = DiagnosticsCaptureFailure(step, exc)
        log.warning("%s", failure, exc_info=exc)
        return failure
