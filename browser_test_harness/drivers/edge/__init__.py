"""Microsoft Edge driver module."""

from browser_test_harness.drivers.edge.options import edge_options
from browser_test_harness.drivers.edge.profile import edge_profile

__all__ = ["edge_options", "edge_profile"]
