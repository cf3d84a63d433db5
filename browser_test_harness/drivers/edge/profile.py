"""Microsoft Edge driver profile."""

from browser_test_harness.drivers.chrome.options import chromium_service_arguments
from browser_test_harness.drivers.edge.options import edge_options
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.models.settings import DriverKind

edge_profile = DriverProfile(
    kind=DriverKind.EDGE,
    service_binary_name="msedgedriver",
    port=17556,
    service_log_name="msedgedriver",
    service_arguments=chromium_service_arguments,
    options_factory=edge_options,
    firewall_rule_name="Microsoft Edge WebDriver server",
)
