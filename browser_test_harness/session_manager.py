"""Run and test lifecycle controller for browser tests."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TypeAlias

from yarl import URL

from browser_test_harness.artifacts import ArtifactSink, FileArtifactSink
from browser_test_harness.diagnostics import DiagnosticsCollector, DiagnosticsReport
from browser_test_harness.drivers.base import BrowserSession
from browser_test_harness.drivers.loading import load_driver_profile
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.drivers.session import SessionFactory, create_session
from browser_test_harness.errors import (
    DiagnosticsCaptureFailure,
    ServiceNotRunningError,
    ServiceStartFailure,
    SessionStateError,
)
from browser_test_harness.models.run import RunContext
from browser_test_harness.models.settings import (
    BrowserSettings,
    DriverKind,
    HarnessSettings,
)
from browser_test_harness.models.test_context import TestAttributes, TestIdentity
from browser_test_harness.outcome import OutcomeMapper, pytest_outcome_mapper
from browser_test_harness.service import ServiceHandle

log = logging.getLogger(__name__)


class LifecycleState(StrEnum):
    """States of a SessionManager."""

    IDLE = "idle"
    RUN_STARTED = "run-started"
    TEST_STARTED = "test-started"
    TEST_STOPPED = "test-stopped"
    RUN_STOPPED = "run-stopped"


ServiceFactory: TypeAlias = Callable[..., ServiceHandle]


async def apply_window_policy(
    session: BrowserSession, settings: BrowserSettings, profile: DriverProfile
) -> None:
    """Maximize, or move and resize only where the window differs from settings."""
    if settings.is_headless and not profile.supports_window_geometry_when_headless:
        log.debug("Window geometry not available for headless %s", profile.kind)
        return

    if settings.is_maximized:
        await session.maximize_window()
        return

    rect = await session.get_window_rect()
    position = settings.window_position
    size = settings.window_size
    if (rect.x, rect.y) != (position.x, position.y):
        await session.set_window_position(position.x, position.y)
    if (rect.width, rect.height) != (size.width, size.height):
        await session.set_window_size(size.width, size.height)


def resolve_initial_url(base_uri: str, initial_url: str) -> str:
    """Resolve a possibly relative initial URL against the base URI."""
    return str(URL(base_uri).join(URL(initial_url)))


def cleanup_service_logs(binaries_directory: Path) -> Sequence[Path]:
    """Delete every ``*.log`` file directly inside the binaries directory.

    Returns:
        Paths that were deleted

    """
    deleted: list[Path] = []
    for path in sorted(binaries_directory.glob("*.log")):
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as exc:
            log.warning("Failed to delete service log %s: %s", path, exc)
            continue
        deleted.append(path)

    if deleted:
        log.info("Deleted %d service log(s) from %s", len(deleted), binaries_directory)
    return deleted


@dataclass(kw_only=True)
class SessionManager:
    """Owns the driver service for a run and one browser session per test.

    States move ``idle -> run-started -> (test-started <-> test-stopped)* ->
    run-stopped``. The driver service is started at most once.
    """

    settings: HarnessSettings
    debug_mode: bool = False
    sink: ArtifactSink = field(default_factory=FileArtifactSink)
    session_factory: SessionFactory = create_session
    profile_loader: Callable[[DriverKind], DriverProfile] = load_driver_profile
    service_factory: ServiceFactory = ServiceHandle
    outcome_mapper: OutcomeMapper = pytest_outcome_mapper
    _state: LifecycleState = field(default=LifecycleState.IDLE, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _profile: DriverProfile | None = field(default=None, init=False, repr=False)
    _service: ServiceHandle | None = field(default=None, init=False, repr=False)
    _context: RunContext | None = field(default=None, init=False, repr=False)
    _session: BrowserSession | None = field(default=None, init=False, repr=False)

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        settings: HarnessSettings,
        binaries_directory: Path,
        *,
        debug_mode: bool = False,
        sink: ArtifactSink | None = None,
        timeout: float | None = None,
    ) -> AsyncGenerator["SessionManager", None]:
        """Create a manager with a started run that is stopped on exit."""
        manager = cls(
            settings=settings,
            debug_mode=debug_mode,
            sink=sink if sink is not None else FileArtifactSink(),
        )
        await manager.start_run(binaries_directory, timeout=timeout)
        try:
            yield manager
        finally:
            await manager.stop_run(timeout=timeout)

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        return self._state

    @property
    def context(self) -> RunContext:
        """Context of the started run."""
        if self._context is None:
            raise SessionStateError("The run has not been started")
        return self._context

    @property
    def service(self) -> ServiceHandle | None:
        """Driver service handle, once the run has been started."""
        return self._service

    @property
    def session(self) -> BrowserSession | None:
        """Session of the test in progress, if any."""
        return self._session

    async def start_run(
        self, binaries_directory: Path, *, timeout: float | None = None
    ) -> RunContext:
        """Start the driver service shared by every test in the run.

        Raises:
            SessionStateError: If the run was already started
            UnsupportedDriverKindError: If no driver profile matches the settings
            ServiceStartFailure: If the service cannot be started

        """
        async with self._lock:
            if self._state is not LifecycleState.IDLE:
                raise SessionStateError(
                    f"start_run may only be called once (state={self._state})"
                )
            # Failed starts are terminal: the run never reaches run-started.
            self._state = LifecycleState.RUN_STOPPED

            self._profile = self.profile_loader(self.settings.browser.driver_kind)
            self._service = self.service_factory(
                profile=self._profile,
                settings=self.settings,
                binaries_directory=binaries_directory,
                debug_mode=self.debug_mode,
            )

            log.info(
                "Starting test run: run_setting=%s, driver=%s, binaries=%s, debug=%s",
                self.settings.run_setting,
                self._profile.kind,
                binaries_directory,
                self.debug_mode,
            )
            try:
                async with asyncio.timeout(timeout):
                    self._context = await self._service.start()
            except TimeoutError as exc:
                await self._service.stop()
                raise ServiceStartFailure(
                    f"Driver service did not start within {timeout} seconds"
                ) from exc
            except BaseException:
                await self._service.stop()
                raise

            self._state = LifecycleState.RUN_STARTED
            return self._context

    async def start_test(self, *, timeout: float | None = None) -> BrowserSession:
        """Create the browser session for the next test.

        Raises:
            SessionStateError: If the run is not started or a test is running
            ServiceNotRunningError: If the driver service is not running
            SessionCreateFailure: If the browser session cannot be created

        """
        if self._state not in {LifecycleState.RUN_STARTED, LifecycleState.TEST_STOPPED}:
            raise SessionStateError(f"Cannot start a test in state {self._state}")

        profile = self._require_profile()
        if self._service is None or not self._service.is_running:
            raise ServiceNotRunningError(
                f"Driver service {profile.service_binary_name} is not running"
            )

        context = self.context
        browser = self.settings.browser

        async with asyncio.timeout(timeout):
            session = await self.session_factory(
                profile, browser, context.service_endpoint
            )
            try:
                if browser.delete_all_cookies:
                    await session.delete_all_cookies()
                await apply_window_policy(session, browser, profile)
                if browser.initial_url:
                    await session.navigate(
                        resolve_initial_url(
                            str(self.settings.environment.base_uri), browser.initial_url
                        )
                    )
            except BaseException:
                await self._quit(session)
                raise

        self._session = session
        self._state = LifecycleState.TEST_STARTED
        return session

    async def stop_test(
        self,
        identity: TestIdentity,
        attributes: TestAttributes,
        outcome: str,
        *,
        timeout: float | None = None,
    ) -> DiagnosticsReport:
        """Capture diagnostics for the finished test and close its session.

        Diagnostics failures are logged and never raised. The session is
        always closed, even when the outcome cannot be mapped.

        Raises:
            SessionStateError: If no test is running
            UnknownOutcomeError: If the outcome has no canonical status

        """
        session = self._session
        service = self._service
        if (
            self._state is not LifecycleState.TEST_STARTED
            or session is None
            or service is None
        ):
            raise SessionStateError(f"Cannot stop a test in state {self._state}")

        self._session = None
        try:
            status = self.outcome_mapper.map(outcome)
            collector = DiagnosticsCollector(
                context=self.context,
                profile=self._require_profile(),
                service=service,
                sink=self.sink,
            )
            try:
                async with asyncio.timeout(timeout):
                    report = await collector.collect(
                        identity, attributes, status, session
                    )
            except Exception as exc:
                failure = DiagnosticsCaptureFailure("diagnostics", exc)
                log.warning("%s (test=%s)", failure, identity.name, exc_info=exc)
                report = DiagnosticsReport(captured=True, failures=[failure])
        finally:
            await self._quit(session, timeout=timeout)
            self._state = LifecycleState.TEST_STOPPED

        log.info(
            "Test stopped: name=%s, status=%s, artifacts=%d",
            identity.name,
            status.display_name,
            len(report.artifacts),
        )
        return report

    async def stop_run(self, *, timeout: float | None = None) -> Sequence[Path]:
        """Stop the driver service and delete its logs from the binaries directory.

        Calling stop_run again, or before a run was started, is a no-op.

        Returns:
            Service log files that were deleted

        """
        async with self._lock:
            if self._service is None or self._state is LifecycleState.IDLE:
                self._state = LifecycleState.RUN_STOPPED
                return []

            if self._session is not None:
                log.warning("Stopping run with a test session still open")
                session = self._session
                self._session = None
                await self._quit(session, timeout=timeout)

            service = self._service
            self._service = None
            self._state = LifecycleState.RUN_STOPPED

            try:
                async with asyncio.timeout(timeout):
                    await service.stop()
            except TimeoutError:
                log.warning(
                    "Timed out stopping driver service pid=%s", service.process_id
                )

            return cleanup_service_logs(service.binaries_directory)

    async def _quit(
        self, session: BrowserSession, timeout: float | None = None
    ) -> None:
        try:
            async with asyncio.timeout(timeout):
                await session.quit()
        except Exception as exc:
            log.warning("Failed to close browser session: %s", exc, exc_info=exc)

    def _require_profile(self) -> DriverProfile:
        if self._profile is None:
            raise SessionStateError("The run has not been started")
        return self._profile
