"""pytest plugin running each browser test against one shared driver service."""

import asyncio
import logging
import os
from collections.abc import Coroutine, Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import pytest

from browser_test_harness.artifacts import FileArtifactSink
from browser_test_harness.diagnostics import DiagnosticsReport
from browser_test_harness.drivers.base import BrowserSession
from browser_test_harness.models.test_context import TestAttributes, TestIdentity
from browser_test_harness.session_manager import SessionManager
from browser_test_harness.settings_loader import load_settings

log = logging.getLogger(__name__)

T = TypeVar("T")

DEBUG_ENV_VAR = "BROWSER_HARNESS_DEBUG"
ARTIFACT_PROPERTY = "artifact"

MARKERS = {
    "description": "description(text): describe the test in diagnostics",
    "owner": "owner(name): person responsible for the test",
    "priority": "priority(n): test priority",
    "category": "category(*names): test categories",
    "work_item": "work_item(*ids): linked work item numbers",
    "test_property": "test_property(key, value): custom key/value property",
    "timeout": "timeout(seconds): expected test timeout, shown in diagnostics",
}

phase_report_key = pytest.StashKey[dict[str, pytest.TestReport]]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("browser-harness", "browser test harness")
    group.addoption(
        "--browser-settings",
        type=Path,
        default=None,
        help="YAML settings file; browser tests are skipped without it",
    )
    group.addoption(
        "--browser-run-setting",
        default=None,
        help="Settings section to use instead of test_run_setting",
    )
    group.addoption(
        "--browser-binaries-dir",
        type=Path,
        default=None,
        help="Directory holding the driver service binaries (default: cwd)",
    )
    group.addoption(
        "--browser-log-dir",
        type=Path,
        default=None,
        help="Directory for test artifacts (default: <rootdir>/test-logs)",
    )
    group.addoption(
        "--browser-debug",
        action="store_true",
        default=False,
        help=f"Capture every artifact for every test (or set {DEBUG_ENV_VAR}=1)",
    )


def pytest_configure(config: pytest.Config) -> None:
    for marker in MARKERS.values():
        config.addinivalue_line("markers", marker)


@pytest.hookimpl(wrapper=True, tryfirst=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[None]
) -> Generator[None, pytest.TestReport, pytest.TestReport]:
    report = yield
    item.stash.setdefault(phase_report_key, {})[report.when] = report
    return report


def debug_mode_enabled(config: pytest.Config) -> bool:
    """Debug mode is on when the option is given or the env var is truthy."""
    if config.getoption("browser_debug"):
        return True
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in {"1", "true", "yes"}


def attributes_for(item: pytest.Item) -> TestAttributes:
    """Build test attributes from the markers applied to an item."""
    properties: list[tuple[str, Any]] = []
    for marker in reversed(list(item.iter_markers())):
        match marker.name:
            case "description":
                properties.append(("Description", marker.args[0]))
            case "owner":
                properties.append(("Author", marker.args[0]))
            case "priority":
                properties.append(("Priority", marker.args[0]))
            case "category":
                properties.extend(("Category", arg) for arg in marker.args)
            case "work_item":
                properties.extend(("WorkItem", arg) for arg in marker.args)
            case "test_property":
                key, value = marker.args
                properties.append((key, value))
            case "timeout":
                properties.append(("Timeout", int(float(marker.args[0]) * 1000)))
    return TestAttributes.from_properties(properties)


def identity_for(
    item: pytest.Item, binaries_directory: Path, log_directory: Path
) -> TestIdentity:
    """Build the identity of an item for artifact naming."""
    module = getattr(item, "module", None)
    module_name = module.__name__ if module is not None else ""
    cls = getattr(item, "cls", None)
    return TestIdentity(
        name=item.name,
        class_name=f"{module_name}.{cls.__qualname__}" if cls else module_name,
        binaries_directory=binaries_directory,
        deployment_directory=item.path.parent,
        log_directory=log_directory,
    )


def outcome_for(item: pytest.Item) -> str:
    """Outcome of the item so far: the call phase, else the setup phase."""
    reports = item.stash.get(phase_report_key, {})
    report = reports.get("call") or reports.get("setup")
    return report.outcome if report is not None else "skipped"


@dataclass(kw_only=True)
class ReportPublisher:
    """Attaches published artifacts to the current item's user properties."""

    item: pytest.Item | None = None

    def __call__(self, path: Path) -> None:
        if self.item is not None:
            self.item.user_properties.append((ARTIFACT_PROPERTY, str(path)))


@dataclass(kw_only=True)
class BrowserRun:
    """A started run, with the event loop every browser call runs on."""

    runner: asyncio.Runner
    manager: SessionManager
    publisher: ReportPublisher
    binaries_directory: Path
    log_directory: Path

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the run's event loop."""
        return self.runner.run(coro)

    def start_test(self, item: pytest.Item) -> BrowserSession:
        """Create the browser session for an item."""
        session = self.run(self.manager.start_test())
        self.publisher.item = item
        return session

    def stop_test(self, item: pytest.Item) -> DiagnosticsReport:
        """Capture diagnostics for an item and close its browser session."""
        try:
            return self.run(
                self.manager.stop_test(
                    identity_for(item, self.binaries_directory, self.log_directory),
                    attributes_for(item),
                    outcome_for(item),
                )
            )
        finally:
            self.publisher.item = None


@pytest.fixture(scope="session")
def browser_run(pytestconfig: pytest.Config) -> Generator[BrowserRun, None, None]:
    """Start the driver service once for the whole pytest session."""
    settings_path: Path | None = pytestconfig.getoption("browser_settings")
    if settings_path is None:
        pytest.skip("browser tests need --browser-settings")

    binaries_directory: Path = (
        pytestconfig.getoption("browser_binaries_dir") or Path.cwd()
    )
    log_directory: Path = pytestconfig.getoption("browser_log_dir") or (
        pytestconfig.rootpath / "test-logs"
    )
    publisher = ReportPublisher()

    with asyncio.Runner() as runner:
        settings = runner.run(
            load_settings(settings_path, pytestconfig.getoption("browser_run_setting"))
        )
        manager = SessionManager(
            settings=settings,
            debug_mode=debug_mode_enabled(pytestconfig),
            sink=FileArtifactSink(publishers=[publisher]),
        )
        runner.run(manager.start_run(binaries_directory))
        try:
            yield BrowserRun(
                runner=runner,
                manager=manager,
                publisher=publisher,
                binaries_directory=binaries_directory,
                log_directory=log_directory,
            )
        finally:
            deleted = runner.run(manager.stop_run())
            log.info("Run stopped, %d service log(s) deleted", len(deleted))


@pytest.fixture
def browser(
    request: pytest.FixtureRequest, browser_run: BrowserRun
) -> Generator[BrowserSession, None, None]:
    """A fresh browser session for one test, with diagnostics on teardown."""
    session = browser_run.start_test(request.node)
    try:
        yield session
    finally:
        browser_run.stop_test(request.node)
