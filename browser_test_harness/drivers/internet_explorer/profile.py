"""Internet Explorer driver profile."""

from browser_test_harness.drivers.internet_explorer.options import (
    ie_options,
    ie_service_arguments,
)
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.models.settings import DriverKind

internet_explorer_profile = DriverProfile(
    kind=DriverKind.INTERNET_EXPLORER,
    service_binary_name="IEDriverServer",
    port=5555,
    service_log_name="IEDriverServer",
    service_arguments=ie_service_arguments,
    options_factory=ie_options,
    firewall_rule_name="Command line server for the IE driver",
    # IEDriverServer does not implement the log endpoints.
    supports_log_channels=False,
)
