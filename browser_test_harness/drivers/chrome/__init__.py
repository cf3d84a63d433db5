"""Chrome driver module."""

from browser_test_harness.drivers.chrome.options import chrome_options
from browser_test_harness.drivers.chrome.profile import chrome_profile

__all__ = ["chrome_options", "chrome_profile"]
