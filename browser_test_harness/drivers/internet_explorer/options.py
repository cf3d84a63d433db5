"""Session options and service arguments for Internet Explorer."""

from collections.abc import Mapping, Sequence

from selenium.webdriver import IeOptions

from browser_test_harness.drivers.profile import ServiceLaunch
from browser_test_harness.models.settings import BrowserSettings, LogLevel

IE_SERVICE_LOG_LEVELS: Mapping[LogLevel, str] = {
    LogLevel.OFF: "FATAL",
    LogLevel.SEVERE: "ERROR",
    LogLevel.WARNING: "WARN",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.ALL: "TRACE",
}

# Milliseconds; 0 means no limit.
IE_TIMEOUTS = {"implicit": 0, "pageLoad": 300000, "script": 0}


def ie_service_arguments(launch: ServiceLaunch) -> Sequence[str]:
    """Arguments for IEDriverServer."""
    arguments = [f"--port={launch.port}"]
    if launch.log_path is not None:
        arguments.append(f"--log-file={launch.log_path}")
    level = "DEBUG" if launch.verbose else IE_SERVICE_LOG_LEVELS[launch.log_level]
    arguments.append(f"--log-level={level}")
    return arguments


def ie_options(settings: BrowserSettings) -> IeOptions:
    """Build IeOptions from browser settings."""
    options = IeOptions()
    options.ensure_clean_session = settings.ensure_clean_session
    options.ignore_zoom_level = True
    # IE requires protected mode to match across zones unless this is set.
    options.ignore_protected_mode_settings = settings.ignore_protected_mode
    options.set_capability("timeouts", IE_TIMEOUTS)
    return options
