"""Tests for the pytest plugin."""

from pathlib import Path

import pytest

from browser_test_harness.models.test_context import TestAttributes
from browser_test_harness.pytest_plugin import attributes_for, identity_for

CONFTEST = """
import asyncio
from pathlib import Path

import pytest

from browser_test_harness.artifacts import FileArtifactSink
from browser_test_harness.pytest_plugin import BrowserRun, ReportPublisher
from browser_test_harness.session_manager import SessionManager
from browser_test_harness.testing.factories import HarnessSettingsFactory
from browser_test_harness.testing.fakes import FakeServiceHandle, FakeSessionFactory


@pytest.fixture(scope="session")
def browser_run(tmp_path_factory):
    binaries_directory = tmp_path_factory.mktemp("bin")
    publisher = ReportPublisher()
    manager = SessionManager(
        settings=HarnessSettingsFactory.build(),
        sink=FileArtifactSink(publishers=[publisher]),
        session_factory=FakeSessionFactory(),
        service_factory=FakeServiceHandle,
    )
    with asyncio.Runner() as runner:
        runner.run(manager.start_run(binaries_directory))
        yield BrowserRun(
            runner=runner,
            manager=manager,
            publisher=publisher,
            binaries_directory=binaries_directory,
            log_directory=Path("logs").resolve(),
        )
        runner.run(manager.stop_run())
"""


def test_attributes_from_markers(pytester: pytest.Pytester) -> None:
    """Reads every supported marker into test attributes."""
    item = pytester.getitem(
        """
import pytest

@pytest.mark.description("Logs in with valid credentials")
@pytest.mark.owner("qa-team")
@pytest.mark.priority(1)
@pytest.mark.category("smoke", "login")
@pytest.mark.work_item(42, 43)
@pytest.mark.test_property("Browser", "chrome")
@pytest.mark.timeout(30)
def test_func():
    pass
"""
    )

    assert attributes_for(item) == TestAttributes(
        description="Logs in with valid credentials",
        owner="qa-team",
        priority=1,
        timeout_ms=30000,
        categories=("smoke", "login"),
        work_items=(42, 43),
        extra_properties=(("Browser", "chrome"),),
    )


def test_attributes_without_markers(pytester: pytest.Pytester) -> None:
    """An unmarked test has default attributes."""
    item = pytester.getitem("def test_func():\n    pass\n")

    assert attributes_for(item) == TestAttributes()


def test_identity_for_class_item(pytester: pytest.Pytester, tmp_path: Path) -> None:
    """Uses the item name and the qualified class name."""
    item = pytester.getitem(
        """
class TestLogin:
    def test_func(self):
        pass
"""
    )

    identity = identity_for(item, tmp_path / "bin", tmp_path / "logs")

    assert identity.name == "test_func"
    assert identity.class_name.endswith(".TestLogin")
    assert identity.deployment_directory == pytester.path
    assert identity.log_directory == tmp_path / "logs"


def test_registers_markers(pytester: pytest.Pytester) -> None:
    """Lists the plugin's markers."""
    result = pytester.runpytest("--markers")

    result.stdout.fnmatch_lines(["*owner(name)*", "*work_item(*ids)*"])


def test_browser_skipped_without_settings(pytester: pytest.Pytester) -> None:
    """Browser tests are skipped when no settings file is given."""
    pytester.makepyfile("def test_page(browser):\n    pass\n")

    result = pytester.runpytest()

    result.assert_outcomes(skipped=1)


def test_failing_test_publishes_screenshot(pytester: pytest.Pytester) -> None:
    """Only the failing test leaves a screenshot, and it is in the report."""
    pytester.makeconftest(CONFTEST)
    pytester.makepyfile(
        """
import pytest

@pytest.mark.owner("qa-team")
def test_passes(browser):
    assert browser is not None

def test_fails(browser):
    assert False
"""
    )

    result = pytester.runpytest("--junitxml=report.xml")

    result.assert_outcomes(passed=1, failed=1)
    logs = pytester.path / "logs"
    assert sorted(path.name for path in logs.iterdir()) == ["test_fails.png"]
    report = (pytester.path / "report.xml").read_text()
    assert 'name="artifact"' in report
    assert str(logs / "test_fails.png") in report
