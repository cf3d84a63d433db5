"""Session options and service arguments for Chrome."""

from collections.abc import Sequence

from selenium.webdriver import ChromeOptions

from browser_test_harness.drivers.profile import SELENIUM_LOG_LEVELS, ServiceLaunch
from browser_test_harness.models.settings import BrowserSettings


def chromium_arguments(settings: BrowserSettings, *, headless: bool) -> Sequence[str]:
    """Command-line switches shared by Chromium-based browsers."""
    arguments = ["disable-plugins", "disable-plugins-discovery", "disable-extensions"]

    if headless:
        arguments.extend(["headless=new", "disable-gpu"])

    if settings.is_maximized:
        arguments.append("start-maximized")
    else:
        position = settings.window_position
        size = settings.window_size
        arguments.append(f"window-position={position.x},{position.y}")
        arguments.append(f"window-size={size.width},{size.height}")

    return arguments


def chromium_service_arguments(launch: ServiceLaunch) -> Sequence[str]:
    """Arguments for chromedriver and msedgedriver."""
    arguments = [f"--port={launch.port}"]
    if launch.log_path is not None:
        arguments.append(f"--log-path={launch.log_path}")
    if launch.verbose:
        arguments.append("--verbose")
    else:
        arguments.append(f"--log-level={SELENIUM_LOG_LEVELS[launch.log_level]}")
    return arguments


def chrome_options(settings: BrowserSettings) -> ChromeOptions:
    """Build ChromeOptions from browser settings."""
    options = ChromeOptions()
    for argument in chromium_arguments(settings, headless=settings.is_headless):
        options.add_argument(f"--{argument}")

    if settings.download_dir:
        options.add_experimental_option(
            "prefs", {"download.default_directory": settings.download_dir}
        )

    # Chrome supports the driver and browser log channels.
    level = SELENIUM_LOG_LEVELS[settings.log_level]
    options.set_capability("goog:loggingPrefs", {"driver": level, "browser": level})
    return options
