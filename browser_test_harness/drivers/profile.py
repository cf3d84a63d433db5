"""Driver profile definition for the driver plugin system."""

import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from selenium.webdriver.common.options import ArgOptions

from browser_test_harness.models.settings import BrowserSettings, DriverKind, LogLevel

# Level names understood by the driver services and the loggingPrefs capability.
SELENIUM_LOG_LEVELS: Mapping[LogLevel, str] = {
    LogLevel.OFF: "OFF",
    LogLevel.SEVERE: "SEVERE",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.ALL: "ALL",
}


@dataclass(frozen=True, kw_only=True)
class ServiceLaunch:
    """Parameters for one driver-service launch."""

    port: int
    log_path: Path | None
    verbose: bool
    log_level: LogLevel


@dataclass(frozen=True, kw_only=True)
class DriverProfile:
    """Everything that varies by driver kind.

    The profile is selected once from the settings' driver kind and used for
    launching the service, building sessions, and naming the service log.
    """

    kind: DriverKind
    service_binary_name: str
    port: int
    service_log_name: str
    service_arguments: Callable[[ServiceLaunch], Sequence[str]]
    options_factory: Callable[[BrowserSettings], ArgOptions]
    firewall_rule_name: str | None = None
    supports_log_channels: bool = True
    supports_window_geometry_when_headless: bool = True

    @property
    def executable_name(self) -> str:
        """Service binary file name on this platform."""
        if sys.platform == "win32":
            return f"{self.service_binary_name}.exe"
        return self.service_binary_name

    def binary_path(self, binaries_directory: Path) -> Path:
        """Location of the service binary."""
        return binaries_directory / self.executable_name

    def service_log_path(self, binaries_directory: Path) -> Path:
        """Location the service writes its own log to."""
        return binaries_directory / f"{self.service_log_name}.log"

    @property
    def service_log_suffix(self) -> str:
        """Artifact suffix for the copied service log."""
        return f"{self.service_log_name.upper()}.md"
