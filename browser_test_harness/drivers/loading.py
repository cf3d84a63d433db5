"""Loading of driver profiles from entry points."""

from importlib.metadata import entry_points

from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.errors import UnsupportedDriverKindError
from browser_test_harness.models.settings import DriverKind

ENTRY_POINT_GROUP = "browser_test_harness.drivers"


def load_driver_profile(kind: DriverKind | str) -> DriverProfile:
    """Load a driver profile by driver kind.

    Args:
        kind: The driver kind as registered in pyproject.toml
              (e.g., "chrome", "internet-explorer")

    Returns:
        The driver profile instance

    Raises:
        UnsupportedDriverKindError: If no profile is registered for the kind

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == str(kind):
            profile: DriverProfile = entry.load()
            return profile

    raise UnsupportedDriverKindError(kind, [e.name for e in entries])
