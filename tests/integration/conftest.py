"""Fixtures for integration tests."""

import dataclasses
import socket
import stat
import sys
from pathlib import Path

import pytest

from browser_test_harness.drivers.chrome import chrome_profile
from browser_test_harness.drivers.profile import DriverProfile

FAKE_SERVICE_SCRIPT = Path(__file__).parent / "fake_driver_service.py"


def write_executable(path: Path, content: str) -> Path:
    """Write a script and mark it executable."""
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_profile() -> DriverProfile:
    """Chrome profile for a service binary named after the fake service."""
    return dataclasses.replace(
        chrome_profile,
        service_binary_name="fake-chromedriver",
        service_log_name="fake-chromedriver",
    )


@pytest.fixture
def binaries_directory(tmp_path: Path, fake_profile: DriverProfile) -> Path:
    """Create binaries directory holding the fake driver service."""
    path = tmp_path / "bin"
    path.mkdir()
    write_executable(
        path / fake_profile.executable_name,
        f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_SERVICE_SCRIPT}" "$@"\n',
    )
    return path


@pytest.fixture
def free_port() -> int:
    """Find a port nothing is listening on."""
    with socket.socket() as sock:
        sock.bind(("localhost", 0))
        return sock.getsockname()[1]
