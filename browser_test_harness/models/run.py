"""Run-scoped context shared by every component for one test run."""

from dataclasses import dataclass
from pathlib import Path

from yarl import URL

from browser_test_harness.models.settings import (
    BrowserSettings,
    EnvironmentSettings,
    HarnessSettings,
)


@dataclass(frozen=True, kw_only=True)
class RunContext:
    """Immutable state created when the driver service starts."""

    service_endpoint: URL
    service_process_id: int
    binaries_directory: Path
    settings: HarnessSettings
    debug_mode: bool = False

    @property
    def browser_settings(self) -> BrowserSettings:
        """Browser settings for the run."""
        return self.settings.browser

    @property
    def environment_settings(self) -> EnvironmentSettings:
        """Environment settings for the run."""
        return self.settings.environment
