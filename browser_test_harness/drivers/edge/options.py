"""Session options for Microsoft Edge."""

from selenium.webdriver import EdgeOptions

from browser_test_harness.drivers.chrome.options import chromium_arguments
from browser_test_harness.drivers.profile import SELENIUM_LOG_LEVELS
from browser_test_harness.models.settings import BrowserSettings


def edge_options(settings: BrowserSettings) -> EdgeOptions:
    """Build EdgeOptions from browser settings. Headless is Chrome only."""
    options = EdgeOptions()
    for argument in chromium_arguments(settings, headless=False):
        options.add_argument(f"--{argument}")

    level = SELENIUM_LOG_LEVELS[settings.log_level]
    options.set_capability("ms:loggingPrefs", {"driver": level, "browser": level})
    return options
