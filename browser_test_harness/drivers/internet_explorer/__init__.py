"""Internet Explorer driver module."""

from browser_test_harness.drivers.internet_explorer.options import ie_options
from browser_test_harness.drivers.internet_explorer.profile import (
    internet_explorer_profile,
)

__all__ = ["ie_options", "internet_explorer_profile"]
