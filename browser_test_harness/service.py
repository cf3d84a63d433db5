"""Lifecycle of the driver-service process shared by every test in a run."""

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiohttp
from pydantic import BaseModel, ValidationError
from yarl import URL

from browser_test_harness.drivers.profile import DriverProfile, ServiceLaunch
from browser_test_harness.errors import ServiceStartFailure
from browser_test_harness.host import (
    HostActionResult,
    configure_firewall_rule,
    kill_stale_processes,
    port_in_use,
)
from browser_test_harness.models.run import RunContext
from browser_test_harness.models.settings import HarnessSettings

log = logging.getLogger(__name__)

SERVICE_HOST = "localhost"


class ServiceStatus(BaseModel):
    """The ``value`` member of a driver service status response."""

    ready: bool = False
    message: str = ""


class StatusResponse(BaseModel):
    """Response from the driver service ``/status`` endpoint."""

    value: ServiceStatus


@dataclass(kw_only=True)
class ServiceHandle:
    """Owns exactly one driver-service process for a whole run."""

    profile: DriverProfile
    settings: HarnessSettings
    binaries_directory: Path
    debug_mode: bool = False
    poll_interval: float = 0.25
    host_actions: list[HostActionResult] = field(default_factory=list, init=False)
    _process: asyncio.subprocess.Process | None = field(
        default=None, init=False, repr=False
    )
    _stopped: bool = field(default=False, init=False, repr=False)

    @property
    def port(self) -> int:
        """Port the service listens on."""
        return self.settings.browser.service_port or self.profile.port

    @property
    def endpoint(self) -> URL:
        """Base URL of the service's WebDriver endpoint."""
        return URL.build(scheme="http", host=SERVICE_HOST, port=self.port)

    @property
    def log_path(self) -> Path | None:
        """Service log file, only written in debug mode."""
        if not self.debug_mode:
            return None
        return self.profile.service_log_path(self.binaries_directory)

    @property
    def process_id(self) -> int | None:
        """Process ID of the service, once launched."""
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        """Whether the service process is alive."""
        return (
            self._process is not None
            and not self._stopped
            and self._process.returncode is None
        )

    async def start(self) -> RunContext:
        """Launch the service and wait until it reports ready.

        Raises:
            ServiceStartFailure: If the binary is missing, the port is already
                bound, or readiness is not observed within the startup timeout

        """
        if self._process is not None:
            raise ServiceStartFailure("Driver service has already been started")

        binary = self.profile.binary_path(self.binaries_directory)
        if not binary.is_file():
            raise ServiceStartFailure(f"Driver service binary not found: {binary}")

        # A port override means parallel workers share the host; only this
        # worker's port is reclaimed.
        stale_port = self.port if self.settings.browser.service_port else None
        self.host_actions.append(
            await kill_stale_processes(
                self.profile.service_binary_name, port=stale_port
            )
        )
        if self.profile.firewall_rule_name:
            self.host_actions.append(
                await configure_firewall_rule(self.profile.firewall_rule_name, binary)
            )

        if await asyncio.to_thread(port_in_use, SERVICE_HOST, self.port):
            raise ServiceStartFailure(
                f"Port {self.port} is already in use; "
                "parallel workers need distinct service_port values"
            )

        browser = self.settings.browser
        arguments = self.profile.service_arguments(
            ServiceLaunch(
                port=self.port,
                log_path=self.log_path,
                verbose=browser.verbose_logging,
                log_level=browser.log_level,
            )
        )

        log.info(
            "Starting driver service: binary=%s, port=%d, args=%s",
            binary,
            self.port,
            " ".join(arguments),
        )

        try:
            self._process = await asyncio.create_subprocess_exec(
                str(binary),
                *arguments,
                cwd=self.binaries_directory,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                **self._platform_options(),
            )
        except OSError as exc:
            raise ServiceStartFailure(f"Failed to launch {binary}: {exc}") from exc

        try:
            await self.wait_until_ready(timeout=browser.startup_timeout_seconds)
        except BaseException:
            await self.stop()
            raise

        log.info(
            "Driver service ready: endpoint=%s, pid=%s", self.endpoint, self.process_id
        )

        return RunContext(
            service_endpoint=self.endpoint,
            service_process_id=self._process.pid,
            binaries_directory=self.binaries_directory,
            settings=self.settings,
            debug_mode=self.debug_mode,
        )

    async def wait_until_ready(self, timeout: float) -> None:
        """Poll the status endpoint until the service reports ready.

        Raises:
            ServiceStartFailure: If the process exits or the timeout elapses

        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        async with aiohttp.ClientSession() as session:
            while True:
                if self._process is None or self._process.returncode is not None:
                    returncode = self._process.returncode if self._process else None
                    raise ServiceStartFailure(
                        f"Driver service exited during startup (code={returncode})"
                    )

                if await self._probe(session):
                    return

                if loop.time() >= deadline:
                    raise ServiceStartFailure(
                        f"Driver service did not report ready within {timeout} seconds"
                    )

                await asyncio.sleep(self.poll_interval)

    async def probe(self) -> bool:
        """Check whether the service answers its status endpoint as ready."""
        async with aiohttp.ClientSession() as session:
            return await self._probe(session)

    async def _probe(self, session: aiohttp.ClientSession) -> bool:
        try:
            async with session.get(
                self.endpoint / "status", timeout=aiohttp.ClientTimeout(total=2)
            ) as response:
                if response.status != 200:
                    return False
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError):
            return False

        try:
            status = StatusResponse.model_validate(data)
        except ValidationError:
            log.debug("Unexpected status payload from driver service: %s", data)
            return False
        return status.value.ready

    async def stop(self) -> None:
        """Stop the service, killing it after the shutdown grace period.

        Calling stop more than once is a no-op.
        """
        if self._stopped:
            return
        self._stopped = True

        process = self._process
        if process is None or process.returncode is not None:
            return

        grace = self.settings.browser.shutdown_grace_seconds
        log.info("Stopping driver service pid=%d", process.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=grace)
        except TimeoutError:
            log.warning(
                "Driver service pid=%d did not exit within %.1fs, killing",
                process.pid,
                grace,
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    def _platform_options(self) -> dict[str, Any]:
        if sys.platform == "win32" and self.settings.browser.hide_service_window:
            return {"creationflags": subprocess.CREATE_NO_WINDOW}
        return {}
