"""Chrome driver profile."""

from browser_test_harness.drivers.chrome.options import (
    chrome_options,
    chromium_service_arguments,
)
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.models.settings import DriverKind

chrome_profile = DriverProfile(
    kind=DriverKind.CHROME,
    service_binary_name="chromedriver",
    port=9515,
    service_log_name="chromedriver",
    service_arguments=chromium_service_arguments,
    options_factory=chrome_options,
    # Headless Chrome does not expose window geometry controls.
    supports_window_geometry_when_headless=False,
)
